from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic.aliases import AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict

from allocation.types import RuleConfig


BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BACKEND_DIR / ".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str

    # Runtime
    environment: str = Field(default="development", validation_alias=AliasChoices("environment", "ENVIRONMENT"))
    frontend_origin: str = Field(
        default="http://localhost:5173",
        validation_alias=AliasChoices("frontend_origin", "FRONTEND_ORIGIN"),
    )
    allocation_log_file: str = Field(
        default="allocation.log",
        validation_alias=AliasChoices("allocation_log_file", "ALLOCATION_LOG_FILE"),
    )

    # Allocation rules
    allow_department_mixing: bool = Field(
        default=True,
        validation_alias=AliasChoices("allow_department_mixing", "ALLOW_DEPARTMENT_MIXING"),
    )
    strict_ug_pg_separation: bool = Field(
        default=True,
        validation_alias=AliasChoices("strict_ug_pg_separation", "STRICT_UG_PG_SEPARATION"),
    )
    strict_shift_separation: bool = Field(
        default=True,
        validation_alias=AliasChoices("strict_shift_separation", "STRICT_SHIFT_SEPARATION"),
    )

    valid_shifts: str = Field(
        default="MORNING,AFTERNOON,EVENING",
        validation_alias=AliasChoices("valid_shifts", "VALID_SHIFTS"),
    )
    # Expected ranges; out-of-range classes and rooms are logged, never rejected.
    min_class_strength: int = Field(default=1, ge=1, validation_alias=AliasChoices("min_class_strength", "MIN_CLASS_STRENGTH"))
    max_class_strength: int = Field(default=500, ge=1, validation_alias=AliasChoices("max_class_strength", "MAX_CLASS_STRENGTH"))
    min_room_capacity: int = Field(default=1, ge=1, validation_alias=AliasChoices("min_room_capacity", "MIN_ROOM_CAPACITY"))
    max_room_capacity: int = Field(default=1000, ge=1, validation_alias=AliasChoices("max_room_capacity", "MAX_ROOM_CAPACITY"))

    @field_validator("frontend_origin")
    @classmethod
    def _normalize_frontend_origin(cls, v: str) -> str:
        # Starlette CORS expects the Origin to match exactly (no trailing slash).
        return v.strip().rstrip("/")

    @field_validator("valid_shifts")
    @classmethod
    def _normalize_valid_shifts(cls, v: str) -> str:
        shifts = [s.strip().upper() for s in (v or "").split(",") if s.strip()]
        if not shifts:
            raise ValueError("VALID_SHIFTS must name at least one shift")
        return ",".join(shifts)

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, v: str) -> str:
        return (v or "development").strip().lower()

    @property
    def shift_choices(self) -> tuple[str, ...]:
        return tuple(self.valid_shifts.split(","))

    def rule_config(self) -> RuleConfig:
        return RuleConfig(
            allow_department_mixing=self.allow_department_mixing,
            strict_ug_pg_separation=self.strict_ug_pg_separation,
            strict_shift_separation=self.strict_shift_separation,
        )


settings = Settings()
