"""Leaf scan workflow: validate, analyze, then record against the session."""
import logging
from typing import TYPE_CHECKING, Optional, Union

from pydantic import BaseModel

from ..models import AnalysisResult
from .history import RecordOutcome, RecordStatus
from .vision import CROP_TYPES, ScanAnalysisClient, build_image_url

if TYPE_CHECKING:
    from ..state import AppState

logger = logging.getLogger(__name__)


class ScanInputError(Exception):
    pass


class ScanOutcome(BaseModel):
    result: AnalysisResult
    record: RecordOutcome


def validate_scan_input(image_data: Union[str, bytes, None], crop_type: Optional[str]) -> str:
    """Check the user's selections before anything goes over the network.

    Returns the normalised crop tag.
    """
    crop = (crop_type or "").strip().lower()
    if not crop:
        raise ScanInputError("Please select a crop type first")
    if crop not in CROP_TYPES:
        raise ScanInputError(f"Unknown crop type: {crop_type}")
    if not image_data:
        raise ScanInputError("Please upload an image first")
    return crop


async def run_scan(
    state: "AppState",
    client: ScanAnalysisClient,
    image_data: Union[str, bytes, None],
    crop_type: Optional[str],
) -> ScanOutcome:
    """Analyze one upload and, if still current, record it for the signed-in user.

    Analysis errors propagate to the caller. A response that resolves after
    the scanner was reset or another scan started is returned but leaves the
    session state alone.
    """
    crop = validate_scan_input(image_data, crop_type)
    image_ref = build_image_url(image_data)

    token = state.begin_analysis()
    result = await client.analyze(image_ref, crop)

    if not state.is_current(token):
        logger.info("[run_scan] dropping stale analysis result (token=%s)", token)
        return ScanOutcome(result=result, record=RecordOutcome(status=RecordStatus.STALE))

    record = state.add_scan(crop, result, image_ref)
    if record.status == RecordStatus.WRITE_FAILED:
        logger.warning("[run_scan] analysis shown but not saved: %s", record.error)
    return ScanOutcome(result=result, record=record)
