#!/usr/bin/env python3
"""Validate local allocation engine environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sqlite3
import sys
import tempfile
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.models import OrderDraft, OrderStatus, PriorityTier
from backend.repository.data_repository import SEED_ZONES, DataRepository
from backend.services.allocation_engine import AllocationEngine
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="cnc-env-")

    # CHECK 1 — Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 — Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        temp_db_path = Path(temp_dir) / "cnc_validation.db"
        validation_settings = replace(get_settings(), database_path=temp_db_path)
        repository = DataRepository(validation_settings)

        # CHECK 3 — Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 — Reference data seeding
        try:
            repository.seed_reference_data()
            with sqlite3.connect(temp_db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM Zones;")
                zone_rows = int(cursor.fetchone()[0])
                cursor.execute("SELECT COUNT(*) FROM TimeSlots;")
                slot_rows = int(cursor.fetchone()[0])
            if zone_rows != len(SEED_ZONES):
                raise RuntimeError(f"expected {len(SEED_ZONES)} zones, got {zone_rows}")
            if slot_rows == 0:
                raise RuntimeError("no pickup slots were seeded")
            ok, line = _print_result(
                "Reference data",
                True,
                f": {zone_rows} zones, {slot_rows} slots",
            )
        except Exception as exc:
            ok, line = _print_result("Reference data", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5 — Allocate and release round trip
        try:
            engine = AllocationEngine.from_repository(repository, validation_settings)
            before = engine.get_zone("A").utilization
            order = engine.place_order(
                OrderDraft(
                    order_id=1,
                    customer_id=918393,
                    created_at=datetime.now(timezone.utc),
                    amount=Decimal("10.00"),
                    priority=PriorityTier.HIGH,
                )
            )
            engine.update_order_status(order.order_id, OrderStatus.CANCELED)
            after = engine.get_zone("A").utilization
            if order.zone_id != "A" or after != before:
                raise RuntimeError(
                    f"zone={order.zone_id} utilization before={before} after={after}"
                )
            ok, line = _print_result("Allocation round trip", True)
        except Exception as exc:
            ok, line = _print_result("Allocation round trip", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Allocation Engine Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
