"""Repository layer for the provisioning catalog: zones, pickup slots and staff."""

from __future__ import annotations

import sqlite3
from datetime import time
from pathlib import Path
from typing import List, Optional

from backend.domain.models import StaffMember, TimeSlot, Zone, ZoneClass
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


SEED_ZONES: tuple[tuple[str, int, int, str], ...] = (
    ("A", 100, 50, ZoneClass.PRIORITY.value),
    ("B", 200, 120, ZoneClass.STANDARD.value),
    ("C", 150, 90, ZoneClass.ECONOMY.value),
)

SEED_STAFF: tuple[tuple[int, str, str, str], ...] = (
    (502, "Emma White", "Picker", "A"),
    (503, "John Miller", "Coordinator", "B"),
    (504, "Sarah Johnson", "Picker", "C"),
    (505, "David Smith", "Coordinator", "A"),
    (506, "Emily Davis", "Picker", "B"),
    (507, "Michael Brown", "Coordinator", "C"),
    (508, "Laura Wilson", "Picker", "A"),
    (509, "Kevin Moore", "Coordinator", "B"),
    (510, "Megan Anderson", "Picker", "C"),
    (511, "Chris Taylor", "Coordinator", "A"),
    (512, "Jessica Martinez", "Picker", "B"),
    (513, "Daniel Thompson", "Coordinator", "C"),
    (514, "Rachel Walker", "Picker", "A"),
    (515, "Steven Clark", "Coordinator", "B"),
    (516, "Andrew Young", "Picker", "A"),
    (517, "Laura Lee", "Coordinator", "C"),
)


class DataRepository:
    """Encapsulates SQLite access so the registries stay storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create the catalog tables before the engine is provisioned."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Zones (
                        zone_id TEXT PRIMARY KEY,
                        capacity INTEGER NOT NULL CHECK (capacity > 0),
                        current_utilization INTEGER NOT NULL
                            CHECK (current_utilization >= 0 AND current_utilization <= capacity),
                        zone_class TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS TimeSlots (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        slot_capacity INTEGER NOT NULL CHECK (slot_capacity > 0),
                        slot_booked INTEGER NOT NULL DEFAULT 0
                            CHECK (slot_booked >= 0 AND slot_booked <= slot_capacity),
                        CHECK (start_time < end_time)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Staff (
                        id INTEGER PRIMARY KEY,
                        name TEXT NOT NULL,
                        role TEXT NOT NULL,
                        zone_id TEXT NOT NULL,
                        FOREIGN KEY (zone_id) REFERENCES Zones(zone_id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_zones_class
                    ON Zones(zone_class);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_reference_data(self) -> None:
        """Seed zones, the pickup day and the staff roster, one table at a time.

        Each table is filled only while it is empty, so a catalog left half
        seeded by an earlier failed start is completed on the next one.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                seeded: list[str] = []

                if self._is_empty(cursor, "Zones"):
                    cursor.executemany(
                        """
                        INSERT INTO Zones (zone_id, capacity, current_utilization, zone_class)
                        VALUES (?, ?, ?, ?);
                        """,
                        SEED_ZONES,
                    )
                    seeded.append(f"{len(SEED_ZONES)} zones")

                if self._is_empty(cursor, "TimeSlots"):
                    slot_rows = [
                        (
                            time(hour=hour).isoformat(timespec="minutes"),
                            time(hour=hour + 1).isoformat(timespec="minutes"),
                            self._settings.slot_default_capacity,
                        )
                        for hour in range(
                            self._settings.slot_day_start_hour,
                            self._settings.slot_day_end_hour,
                        )
                    ]
                    if not slot_rows:
                        raise ValueError(
                            "pickup day window "
                            f"{self._settings.slot_day_start_hour}-{self._settings.slot_day_end_hour} "
                            "yields no slots"
                        )
                    cursor.executemany(
                        """
                        INSERT INTO TimeSlots (start_time, end_time, slot_capacity)
                        VALUES (?, ?, ?);
                        """,
                        slot_rows,
                    )
                    seeded.append(f"{len(slot_rows)} slots")

                if self._is_empty(cursor, "Staff"):
                    cursor.executemany(
                        "INSERT INTO Staff (id, name, role, zone_id) VALUES (?, ?, ?, ?);",
                        SEED_STAFF,
                    )
                    seeded.append(f"{len(SEED_STAFF)} staff")

                conn.commit()
            if seeded:
                logger.info("Reference seed completed with %s", ", ".join(seeded))
            else:
                logger.info("Reference data already present; skipping seed")
        except sqlite3.Error as exc:
            raise RuntimeError(f"Reference data seeding failed: {exc}") from exc

    @staticmethod
    def _is_empty(cursor: sqlite3.Cursor, table: str) -> bool:
        cursor.execute(f"SELECT COUNT(*) AS count FROM {table};")
        return int(cursor.fetchone()["count"]) == 0

    def add_zone(self, zone: Zone) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Zones (zone_id, capacity, current_utilization, zone_class)
                VALUES (?, ?, ?, ?);
                """,
                (zone.zone_id, zone.capacity, zone.utilization, ZoneClass(zone.zone_class).value),
            )
            conn.commit()

    def add_time_slot(
        self,
        start_time: time,
        end_time: time,
        capacity: int,
        booked: int = 0,
    ) -> int:
        """Insert a slot row and return the created id."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO TimeSlots (start_time, end_time, slot_capacity, slot_booked)
                VALUES (?, ?, ?, ?);
                """,
                (
                    start_time.isoformat(timespec="minutes"),
                    end_time.isoformat(timespec="minutes"),
                    capacity,
                    booked,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def list_zones(self) -> List[Zone]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT zone_id, capacity, current_utilization, zone_class
                    FROM Zones
                    ORDER BY zone_id ASC;
                    """
                )
                rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise RuntimeError(f"Failed to load zones: {exc}") from exc
        return [
            Zone(
                zone_id=str(row["zone_id"]),
                capacity=int(row["capacity"]),
                utilization=int(row["current_utilization"]),
                zone_class=ZoneClass(str(row["zone_class"])),
            )
            for row in rows
        ]

    def list_time_slots(self) -> List[TimeSlot]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT id, start_time, end_time, slot_capacity, slot_booked
                    FROM TimeSlots
                    ORDER BY id ASC;
                    """
                )
                rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise RuntimeError(f"Failed to load time slots: {exc}") from exc
        return [
            TimeSlot(
                slot_id=int(row["id"]),
                start_time=time.fromisoformat(str(row["start_time"])),
                end_time=time.fromisoformat(str(row["end_time"])),
                capacity=int(row["slot_capacity"]),
                booked=int(row["slot_booked"]),
            )
            for row in rows
        ]

    def get_staff(self, staff_id: int) -> Optional[StaffMember]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT id, name, role, zone_id FROM Staff WHERE id = ?;",
                    (staff_id,),
                )
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise RuntimeError(f"Failed to load staff {staff_id}: {exc}") from exc
        if row is None:
            return None
        return self._staff_from_row(row)

    def list_staff(self) -> List[StaffMember]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT id, name, role, zone_id FROM Staff ORDER BY id ASC;")
                rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise RuntimeError(f"Failed to load staff roster: {exc}") from exc
        return [self._staff_from_row(row) for row in rows]

    @staticmethod
    def _staff_from_row(row: sqlite3.Row) -> StaffMember:
        return StaffMember(
            staff_id=int(row["id"]),
            name=str(row["name"]),
            role=str(row["role"]),
            zone_id=str(row["zone_id"]),
        )
