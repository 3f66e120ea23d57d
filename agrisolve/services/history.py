"""Scan history persistence.

Turns a finished analysis into a stored `Scan` for the signed-in user and
pushes it onto the session's history as the focused scan.
"""
import logging
import sqlite3
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel

from ..models import AnalysisResult, Scan
from ..store import StoreError

if TYPE_CHECKING:
    from ..state import AppState

logger = logging.getLogger(__name__)


class RecordStatus(str, Enum):
    SAVED = "saved"
    NOT_SIGNED_IN = "not_signed_in"
    WRITE_FAILED = "write_failed"
    STALE = "stale"


class RecordOutcome(BaseModel):
    status: RecordStatus
    scan: Optional[Scan] = None
    error: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.status == RecordStatus.SAVED


def scan_fields(crop_type: str, result: AnalysisResult, image_ref: Optional[str]):
    return {
        "crop_type": crop_type,
        "diagnosis": result.diagnosis,
        "cause": result.cause,
        "organic_cure": result.organicCure,
        "chemical_cure": result.chemicalCure,
        "confidence": result.confidence,
        "image_url": image_ref,
        "healthy_comparison_url": result.healthyImage,
    }


def record_scan(
    state: "AppState",
    user_id: Optional[str],
    crop_type: str,
    result: AnalysisResult,
    image_ref: Optional[str],
) -> RecordOutcome:
    """Store `result` as a scan owned by `user_id`.

    Nothing is written unless `user_id` is the user signed in to `state`.
    Store failures come back as WRITE_FAILED and leave the history untouched.
    """
    if not user_id or state.user is None or state.user.id != user_id:
        return RecordOutcome(status=RecordStatus.NOT_SIGNED_IN)

    try:
        scan = state.store.insert_scan(user_id, scan_fields(crop_type, result, image_ref))
    except (StoreError, sqlite3.Error) as e:
        logger.warning("[record_scan] could not save scan for user=%s: %s", user_id, e)
        return RecordOutcome(status=RecordStatus.WRITE_FAILED, error=str(e))

    state.push_scan(scan)
    return RecordOutcome(status=RecordStatus.SAVED, scan=scan)
