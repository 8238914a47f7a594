from __future__ import annotations

from datetime import date, datetime, time

from db.session import _redact_sql_parameters, ensure_sqlite_directory


def test_redact_sql_parameters_for_mapping_values():
    out = _redact_sql_parameters(
        {
            "user_id": 12345,
            "username": "Kennzeichen LS1234",
            "active": True,
            "created_at": datetime(2026, 2, 13, 12, 0, 0),
            "birthday": date(2026, 2, 13),
            "alarm": time(12, 15),
            "none_value": None,
        }
    )
    assert out == {
        "user_id": "<int>",
        "username": "<redacted>",
        "active": "<bool>",
        "created_at": "<datetime>",
        "birthday": "<date>",
        "alarm": "<time>",
        "none_value": None,
    }


def test_redact_sql_parameters_for_nested_sequence_payloads():
    out = _redact_sql_parameters(
        [
            {"a": "text", "b": 42},
            ("token", 9.5, None),
        ]
    )
    assert out == [
        {"a": "<redacted>", "b": "<int>"},
        ("<redacted>", "<float>", None),
    ]


def test_redact_sql_parameters_truncates_large_collections():
    out = _redact_sql_parameters(list(range(25)))

    assert len(out) == 21
    assert out[-1] == "... +5 more"


def test_ensure_sqlite_directory_creates_parent(tmp_path):
    target = tmp_path / "nested" / "data" / "bot.db"

    ensure_sqlite_directory(f"sqlite+aiosqlite:///{target.as_posix()}")

    assert target.parent.is_dir()


def test_ensure_sqlite_directory_ignores_memory_database():
    ensure_sqlite_directory("sqlite+aiosqlite:///:memory:")
