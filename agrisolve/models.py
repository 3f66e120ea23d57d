"""Pydantic models shared across the Agri-Solve services."""

from __future__ import annotations

import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Coordinate(BaseModel):
    latitude: float
    longitude: float

    def as_tuple(self):
        return (self.latitude, self.longitude)


class Shop(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    latitude: float
    longitude: float
    phone: Optional[str] = None
    pesticide_stock_list: List[str] = Field(default_factory=list)
    organic_products: List[str] = Field(default_factory=list)
    rating: Optional[float] = None
    created_at: str = ""


class RankedShop(Shop):
    distance_km: Optional[float] = None


class Scan(BaseModel):
    id: str
    user_id: str
    crop_type: str
    diagnosis: Optional[str] = None
    cause: Optional[str] = None
    organic_cure: Optional[str] = None
    chemical_cure: Optional[str] = None
    confidence: Optional[float] = None
    image_url: Optional[str] = None
    healthy_comparison_url: Optional[str] = None
    created_at: str


class Profile(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    preferred_language: str = "en"
    field_mode_enabled: bool = False
    created_at: str = ""
    updated_at: str = ""


class AnalysisResult(BaseModel):
    diagnosis: str
    cause: str
    organicCure: str
    chemicalCure: str
    confidence: float
    isHealthy: bool
    preventionTips: Optional[str] = None
    healthyImage: str


class AnalysisReply(BaseModel):
    """Partial view of the JSON object returned by the model.

    Every field is optional; `to_result` fills in the defaults.
    """

    model_config = ConfigDict(extra="ignore")

    diagnosis: Optional[str] = None
    confidence: Optional[float] = None
    isHealthy: Optional[bool] = None
    cause: Optional[str] = None
    organicCure: Optional[str] = None
    chemicalCure: Optional[str] = None
    preventionTips: Optional[str] = None

    @field_validator("diagnosis", "cause", "organicCure", "chemicalCure", "preventionTips", mode="before")
    @classmethod
    def _join_lists(cls, value: Any) -> Any:
        # models sometimes answer with bullet lists instead of prose
        if isinstance(value, (list, tuple)):
            return "\n".join(str(v) for v in value if v is not None)
        return value

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: Optional[float]) -> Optional[float]:
        if value is None or math.isnan(value):
            return None
        return min(max(value, 0.0), 100.0)

    def to_result(self, healthy_image: str) -> AnalysisResult:
        return AnalysisResult(
            diagnosis=self.diagnosis or "Unknown Condition",
            cause=self.cause or "Unable to determine cause",
            organicCure=self.organicCure or "Consult a local agricultural expert",
            chemicalCure=self.chemicalCure or "Professional diagnosis recommended",
            confidence=self.confidence if self.confidence is not None else 75,
            isHealthy=bool(self.isHealthy) if self.isHealthy is not None else False,
            preventionTips=self.preventionTips,
            healthyImage=healthy_image,
        )
