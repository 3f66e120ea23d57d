import json
import logging
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import Profile, Scan, Shop

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(__file__)
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "agrisolve.db")

PROFILE_FIELDS = ("full_name", "preferred_language", "field_mode_enabled")
SCAN_FIELDS = (
    "crop_type", "diagnosis", "cause", "organic_cure", "chemical_cure",
    "confidence", "image_url", "healthy_comparison_url",
)


def get_db_path() -> str:
    return os.getenv("AGRISOLVE_DB_PATH", DEFAULT_DB_PATH)


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class StoreError(Exception):
    pass


class Store:
    """SQLite-backed profiles, scans and shops."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or get_db_path()
        self.init_db()

    def _get_conn(self):
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self):
        conn = self._get_conn()
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS profiles (
                user_id TEXT PRIMARY KEY,
                full_name TEXT,
                preferred_language TEXT NOT NULL DEFAULT 'en',
                field_mode_enabled INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS scans (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                crop_type TEXT NOT NULL,
                diagnosis TEXT,
                cause TEXT,
                organic_cure TEXT,
                chemical_cure TEXT,
                confidence REAL,
                image_url TEXT,
                healthy_comparison_url TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS scans_user_created ON scans (user_id, created_at)")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS shops (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                address TEXT,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                phone TEXT,
                pesticide_stock_list TEXT,
                organic_products TEXT,
                rating REAL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.commit()
        conn.close()

    # -- profiles --------------------------------------------------------

    def create_profile(self, user_id: str, full_name: Optional[str] = None) -> Profile:
        now = utcnow()
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO profiles (user_id, full_name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (user_id, full_name, now, now),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_profile(user_id)

    def get_profile(self, user_id: str) -> Optional[Profile]:
        conn = self._get_conn()
        row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        conn.close()
        if not row:
            return None
        return Profile(
            user_id=row["user_id"],
            full_name=row["full_name"],
            preferred_language=row["preferred_language"] or "en",
            field_mode_enabled=bool(row["field_mode_enabled"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def update_profile(self, user_id: str, **fields: Any) -> Optional[Profile]:
        updates = {k: v for k, v in fields.items() if k in PROFILE_FIELDS and v is not None}
        if not updates:
            return self.get_profile(user_id)
        if "field_mode_enabled" in updates:
            updates["field_mode_enabled"] = int(bool(updates["field_mode_enabled"]))
        updates["updated_at"] = utcnow()
        assignments = ", ".join(f"{k} = ?" for k in updates)
        conn = self._get_conn()
        try:
            conn.execute(
                f"UPDATE profiles SET {assignments} WHERE user_id = ?",
                (*updates.values(), user_id),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_profile(user_id)

    # -- scans -----------------------------------------------------------

    def insert_scan(self, user_id: str, scan_data: Dict[str, Any]) -> Scan:
        """Insert a scan owned by `user_id` and return the stored record."""
        if not user_id:
            raise StoreError("user_id is required")
        values = {k: scan_data.get(k) for k in SCAN_FIELDS}
        if not values["crop_type"]:
            raise StoreError("crop_type is required")
        scan_id = str(uuid.uuid4())
        created_at = utcnow()
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO scans (id, user_id, %s, created_at) VALUES (?, ?, %s, ?)"
                % (", ".join(SCAN_FIELDS), ", ".join("?" for _ in SCAN_FIELDS)),
                (scan_id, user_id, *values.values(), created_at),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()
        return Scan(id=scan_id, user_id=user_id, created_at=created_at, **values)

    def list_scans(self, user_id: str) -> List[Scan]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM scans WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
            (user_id,),
        ).fetchall()
        conn.close()
        return [Scan(**dict(r)) for r in rows]

    # -- shops -----------------------------------------------------------

    def add_shop(self, shop: Dict[str, Any]) -> Shop:
        shop_id = str(shop.get("id") or uuid.uuid4())
        created_at = shop.get("created_at") or utcnow()
        if "name" not in shop or "latitude" not in shop or "longitude" not in shop:
            raise StoreError("shop requires name, latitude and longitude")
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO shops (id, name, address, latitude, longitude, phone,
                                   pesticide_stock_list, organic_products, rating, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    shop_id,
                    shop["name"],
                    shop.get("address"),
                    float(shop["latitude"]),
                    float(shop["longitude"]),
                    shop.get("phone"),
                    json.dumps(shop.get("pesticide_stock_list") or []),
                    json.dumps(shop.get("organic_products") or []),
                    shop.get("rating"),
                    created_at,
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()
        return self._shop_from_row({**shop, "id": shop_id, "created_at": created_at})

    def list_shops(self) -> List[Shop]:
        """All shops, best rated first; unrated shops go last."""
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM shops ORDER BY rating IS NULL, rating DESC, rowid ASC"
        ).fetchall()
        conn.close()
        return [self._shop_from_row(dict(r)) for r in rows]

    def count_shops(self) -> int:
        conn = self._get_conn()
        n = conn.execute("SELECT COUNT(*) FROM shops").fetchone()[0]
        conn.close()
        return n

    def load_shops_file(self, path: str) -> int:
        """Seed shops from a JSON array file. Returns the number inserted."""
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        for item in payload:
            self.add_shop(item)
        logger.info("Loaded %d shops from %s", len(payload), path)
        return len(payload)

    @staticmethod
    def _shop_from_row(row: Dict[str, Any]) -> Shop:
        def _list(value):
            if not value:
                return []
            if isinstance(value, list):
                return value
            return json.loads(value)

        return Shop(
            id=row["id"],
            name=row["name"],
            address=row.get("address"),
            latitude=row["latitude"],
            longitude=row["longitude"],
            phone=row.get("phone"),
            pesticide_stock_list=_list(row.get("pesticide_stock_list")),
            organic_products=_list(row.get("organic_products")),
            rating=row.get("rating"),
            created_at=row.get("created_at") or "",
        )
