from __future__ import annotations

import unittest
from unittest.mock import patch

from truewood_ems.services.schema_guard import REQUIRED_TABLE_COLUMNS, verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, *, columns_by_table: dict[str, set[str]], enums: list[dict[str, object]] | None):
        self._columns_by_table = columns_by_table
        self._enums = enums

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_enums(self):  # type: ignore[no-untyped-def]
        if self._enums is None:
            raise NotImplementedError
        return self._enums


def _complete_columns() -> dict[str, set[str]]:
    return {table_name: set(columns) for table_name, columns in REQUIRED_TABLE_COLUMNS.items()}


class SchemaGuardTests(unittest.TestCase):
    def test_ok_when_required_columns_and_enums_exist(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table=_complete_columns(),
            enums=[
                {"name": "attendance_status", "labels": ["PRESENT", "ABSENT", "LEAVE"]},
                {"name": "work_site_status", "labels": ["ACTIVE", "COMPLETED", "ON_HOLD", "CANCELLED"]},
            ],
        )

        with patch("truewood_ems.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine("0001_initial"))  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])
        self.assertEqual(result.to_dict()["issue_count"], 0)

    def test_reports_missing_columns_enum_values_and_empty_version(self) -> None:
        columns = _complete_columns()
        columns["work_site_schedule_history"] = {"id", "work_site_id"}
        columns["attendance_records"].discard("break_hours")
        fake_inspector = _FakeInspector(
            columns_by_table=columns,
            enums=[{"name": "attendance_status", "labels": ["PRESENT", "ABSENT"]}],
        )

        with patch("truewood_ems.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine(""))  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn(
            "MISSING_COLUMNS:work_site_schedule_history:break_hours,effective_from,time_in,time_out",
            result.issues,
        )
        self.assertIn("MISSING_COLUMNS:attendance_records:break_hours", result.issues)
        self.assertIn("MISSING_ENUM_VALUES:attendance_status:LEAVE", result.issues)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)
        self.assertIn("ENUM_NOT_FOUND:work_site_status", result.warnings)

    def test_missing_table_and_no_enum_support(self) -> None:
        columns = _complete_columns()
        del columns["weekly_off"]
        fake_inspector = _FakeInspector(columns_by_table=columns, enums=None)

        with patch("truewood_ems.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine("0001_initial"))  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertEqual(result.issues, ["TABLE_UNREADABLE:weekly_off:KeyError"])
        self.assertEqual(result.warnings, ["ENUM_INSPECTION_FAILED:NotImplementedError"])


if __name__ == "__main__":
    unittest.main()
