# backend/tests/test_config.py

import pytest
from pydantic import ValidationError

from allocation.types import RuleConfig
from core.config import Settings
from core.database import is_transient_db_connectivity_error, normalize_database_url


def test_defaults(monkeypatch):
    for name in ("ALLOW_DEPARTMENT_MIXING", "STRICT_UG_PG_SEPARATION", "STRICT_SHIFT_SEPARATION", "VALID_SHIFTS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)

    assert settings.rule_config() == RuleConfig()
    assert settings.shift_choices == ("MORNING", "AFTERNOON", "EVENING")
    assert (settings.min_class_strength, settings.max_class_strength) == (1, 500)
    assert (settings.min_room_capacity, settings.max_room_capacity) == (1, 1000)


def test_rule_flags_from_environment(monkeypatch):
    monkeypatch.setenv("ALLOW_DEPARTMENT_MIXING", "false")
    monkeypatch.setenv("STRICT_SHIFT_SEPARATION", "0")
    settings = Settings(_env_file=None)

    config = settings.rule_config()
    assert config.allow_department_mixing is False
    assert config.strict_shift_separation is False
    assert config.strict_ug_pg_separation is True


def test_valid_shifts_are_normalized(monkeypatch):
    monkeypatch.setenv("VALID_SHIFTS", " morning, evening ,")
    assert Settings(_env_file=None).shift_choices == ("MORNING", "EVENING")


def test_empty_valid_shifts_rejected(monkeypatch):
    monkeypatch.setenv("VALID_SHIFTS", " , ")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_frontend_origin_and_environment_normalized(monkeypatch):
    monkeypatch.setenv("FRONTEND_ORIGIN", " https://exams.example.edu/ ")
    monkeypatch.setenv("ENVIRONMENT", " Production ")
    settings = Settings(_env_file=None)
    assert settings.frontend_origin == "https://exams.example.edu"
    assert settings.environment == "production"


def test_normalize_database_url():
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"
    assert normalize_database_url(" postgresql://u:p@h/db ") == "postgresql+psycopg2://u:p@h/db"
    assert normalize_database_url("sqlite+pysqlite:///:memory:") == "sqlite+pysqlite:///:memory:"


def test_transient_connectivity_detection():
    assert is_transient_db_connectivity_error(Exception("could not connect: Connection refused"))
    assert is_transient_db_connectivity_error(Exception("connect timed out"))
    assert not is_transient_db_connectivity_error(Exception("duplicate key value violates unique constraint"))
