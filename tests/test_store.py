import json

import pytest

from agrisolve.store import Store, StoreError

from .conftest import SAMPLE_SHOPS


def test_profile_roundtrip_and_partial_update(store):
    store.create_profile("u1", "Lakshmi")
    store.create_profile("u1", "Ignored")
    profile = store.update_profile("u1", preferred_language="te", unknown="x")
    assert profile.full_name == "Lakshmi"
    assert profile.preferred_language == "te"
    assert profile.field_mode_enabled is False
    assert store.update_profile("u1", field_mode_enabled=True).field_mode_enabled is True
    assert store.get_profile("missing") is None


def test_scans_are_listed_newest_first_per_user(store):
    a = store.insert_scan("u1", {"crop_type": "rice", "diagnosis": "Blast"})
    b = store.insert_scan("u1", {"crop_type": "wheat"})
    store.insert_scan("u2", {"crop_type": "cotton"})
    assert [s.id for s in store.list_scans("u1")] == [b.id, a.id]
    assert store.list_scans("u1")[1].diagnosis == "Blast"


@pytest.mark.parametrize("user_id, data", [
    ("", {"crop_type": "rice"}),
    ("u1", {"diagnosis": "Blast"}),
])
def test_insert_scan_requires_owner_and_crop(store, user_id, data):
    with pytest.raises(StoreError):
        store.insert_scan(user_id, data)


def test_shops_keep_product_lists(store, shops):
    far = next(s for s in store.list_shops() if s.id == "s-far")
    assert far.pesticide_stock_list == ["Mancozeb"]
    assert far.organic_products == ["Neem oil"]
    assert store.count_shops() == 3


def test_shop_needs_position(store):
    with pytest.raises(StoreError):
        store.add_shop({"name": "No Location Agro"})


def test_duplicate_shop_id(store, shops):
    with pytest.raises(StoreError):
        store.add_shop(dict(SAMPLE_SHOPS[0]))


def test_load_shops_file(tmp_path):
    seed = tmp_path / "shops.json"
    seed.write_text(json.dumps(SAMPLE_SHOPS), encoding="utf-8")
    store = Store(str(tmp_path / "seeded.db"))
    assert store.load_shops_file(str(seed)) == 3
    assert [s.id for s in store.list_shops()] == ["s-far", "s-near", "s-mid"]
