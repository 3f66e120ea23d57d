import asyncio

import pytest

from agrisolve.services.history import RecordStatus
from agrisolve.services.scanner import ScanInputError, run_scan, validate_scan_input
from agrisolve.services.vision import RateLimitedError

from .conftest import LEAF_DATA_URL, FakeGateway


class ResettingClient:
    """Analysis client that lets the session move on while the call is in flight."""

    def __init__(self, result, during):
        self.result = result
        self.during = during
        self.calls = 0

    async def analyze(self, image_data, crop_type=None):
        self.calls += 1
        self.during()
        return self.result


@pytest.mark.parametrize("image, crop, message", [
    (LEAF_DATA_URL, None, "Please select a crop type first"),
    (LEAF_DATA_URL, "  ", "Please select a crop type first"),
    (None, "rice", "Please upload an image first"),
    ("", "rice", "Please upload an image first"),
    (LEAF_DATA_URL, "banana", "Unknown crop type: banana"),
])
def test_bad_input_never_reaches_the_gateway(state, image, crop, message):
    gateway = FakeGateway("{}")
    with pytest.raises(ScanInputError, match=message):
        asyncio.run(run_scan(state, gateway.client(), image, crop))
    assert gateway.requests == []


def test_crop_is_normalised():
    assert validate_scan_input(LEAF_DATA_URL, " Tomato ") == "tomato"


def test_signed_in_scan_is_saved(signed_in_state):
    gateway = FakeGateway('{"diagnosis": "Leaf Rust", "confidence": 82}')
    outcome = asyncio.run(run_scan(signed_in_state, gateway.client(), LEAF_DATA_URL, "wheat"))

    assert outcome.result.diagnosis == "Leaf Rust"
    assert outcome.record.status == RecordStatus.SAVED
    assert signed_in_state.scans[0].id == outcome.record.scan.id
    assert signed_in_state.current_scan.crop_type == "wheat"
    assert signed_in_state.current_scan.image_url == LEAF_DATA_URL
    assert "wheat" in gateway.last_payload["messages"][1]["content"][0]["text"]


def test_anonymous_scan_returns_result_without_saving(state):
    state.start()
    outcome = asyncio.run(run_scan(state, FakeGateway('{"isHealthy": true}').client(), "abcd", "rice"))
    assert outcome.result.isHealthy is True
    assert outcome.record.status == RecordStatus.NOT_SIGNED_IN
    assert state.scans == []


def test_reset_during_analysis_drops_the_result(signed_in_state, sample_result, store):
    client = ResettingClient(sample_result, signed_in_state.reset_scanner)
    outcome = asyncio.run(run_scan(signed_in_state, client, LEAF_DATA_URL, "rice"))

    assert client.calls == 1
    assert outcome.record.status == RecordStatus.STALE
    assert outcome.result == sample_result
    assert signed_in_state.scans == []
    assert signed_in_state.current_scan is None
    assert store.list_scans(signed_in_state.user.id) == []


def test_newer_scan_supersedes_older_one(signed_in_state, sample_result):
    client = ResettingClient(sample_result, signed_in_state.begin_analysis)
    outcome = asyncio.run(run_scan(signed_in_state, client, LEAF_DATA_URL, "rice"))
    assert outcome.record.status == RecordStatus.STALE


def test_gateway_errors_propagate_and_leave_state_alone(signed_in_state):
    with pytest.raises(RateLimitedError):
        asyncio.run(run_scan(signed_in_state, FakeGateway(status_code=429).client(), LEAF_DATA_URL, "rice"))
    assert signed_in_state.scans == []
    assert signed_in_state.current_scan is None


def test_store_failure_still_returns_result(signed_in_state, monkeypatch):
    from agrisolve.store import StoreError

    def broken_insert(user_id, data):
        raise StoreError("database is locked")

    monkeypatch.setattr(signed_in_state.store, "insert_scan", broken_insert)
    outcome = asyncio.run(run_scan(signed_in_state, FakeGateway('{"diagnosis": "Healthy"}').client(),
                                   LEAF_DATA_URL, "cotton"))
    assert outcome.result.diagnosis == "Healthy"
    assert outcome.record.status == RecordStatus.WRITE_FAILED
    assert signed_in_state.scans == []
