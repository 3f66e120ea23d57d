import pytest

from agrisolve.services.history import RecordStatus, record_scan
from agrisolve.store import StoreError


def test_not_signed_in_writes_nothing(state, store, sample_result):
    state.start()
    outcome = record_scan(state, None, "rice", sample_result, "data:image/jpeg;base64,AAAA")
    assert outcome.status == RecordStatus.NOT_SIGNED_IN
    assert not outcome.saved
    assert state.scans == []
    assert state.current_scan is None


def test_other_users_id_is_refused(signed_in_state, store, sample_result):
    before = list(signed_in_state.scans)
    outcome = record_scan(signed_in_state, "someone-else", "rice", sample_result, None)
    assert outcome.status == RecordStatus.NOT_SIGNED_IN
    assert signed_in_state.scans == before
    assert store.list_scans("someone-else") == []


def test_saved_scan_is_prepended_and_focused(signed_in_state, store, sample_result):
    user_id = signed_in_state.user.id
    first = record_scan(signed_in_state, user_id, "wheat", sample_result, None)
    second = record_scan(signed_in_state, user_id, "rice", sample_result, "data:image/jpeg;base64,AAAA")

    assert first.saved and second.saved
    assert [s.id for s in signed_in_state.scans] == [second.scan.id, first.scan.id]
    assert signed_in_state.current_scan == second.scan

    scan = second.scan
    assert scan.user_id == user_id
    assert scan.crop_type == "rice"
    assert scan.diagnosis == sample_result.diagnosis
    assert scan.organic_cure == sample_result.organicCure
    assert scan.chemical_cure == sample_result.chemicalCure
    assert scan.confidence == 88
    assert scan.image_url == "data:image/jpeg;base64,AAAA"
    assert scan.healthy_comparison_url == sample_result.healthyImage
    assert [s.id for s in store.list_scans(user_id)] == [second.scan.id, first.scan.id]


def test_write_failure_leaves_history_alone(signed_in_state, sample_result, monkeypatch):
    def broken_insert(user_id, data):
        raise StoreError("disk I/O error")

    monkeypatch.setattr(signed_in_state.store, "insert_scan", broken_insert)
    outcome = record_scan(signed_in_state, signed_in_state.user.id, "rice", sample_result, None)
    assert outcome.status == RecordStatus.WRITE_FAILED
    assert outcome.error == "disk I/O error"
    assert outcome.scan is None
    assert signed_in_state.scans == []
    assert signed_in_state.current_scan is None
