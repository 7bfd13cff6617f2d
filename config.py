from dataclasses import dataclass, fields
from typing import List, Literal, Optional, Tuple
from zoneinfo import ZoneInfo
from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import logging
import os
import yaml

load_dotenv()

DEFAULT_CONFIG_PATH = os.getenv("SCHEDULER_CONFIG", "config.yaml")


@dataclass(frozen=True)
class BusinessConfig:
    """Business hours and booking rules shared by availability and booking."""

    business_name: str = "Showroom"
    timezone: str = "America/Los_Angeles"
    open_hour: int = 9
    close_hour: int = 17
    slot_minutes: int = 30
    durations: Tuple[int, ...] = (30, 60)
    default_duration: int = 30
    strict_dates: bool = True
    auth_timeout_seconds: float = 5.0
    storage_timeout_seconds: float = 5.0

    def __post_init__(self):
        if not 0 <= self.open_hour < self.close_hour <= 24:
            raise ValueError(f"Invalid business hours {self.open_hour}-{self.close_hour}")
        if self.slot_minutes <= 0:
            raise ValueError("slot_minutes must be positive")
        if self.default_duration not in self.durations:
            raise ValueError("default_duration must be one of durations")
        # fails early on unknown zone names
        ZoneInfo(self.timezone)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_mapping(cls, data: dict) -> "BusinessConfig":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (data or {}).items() if k in known}
        if "durations" in values:
            values["durations"] = tuple(int(d) for d in values["durations"])
        return cls(**values)


def load_config(path: Optional[str] = None) -> BusinessConfig:
    path = path or DEFAULT_CONFIG_PATH
    try:
        with open(path, "r") as f:
            return BusinessConfig.from_mapping(yaml.safe_load(f))
    except Exception as e:
        logging.error(f"Config load failed ({path}): {e}")
        return BusinessConfig()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    environment: Literal["development", "production", "test"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    # defaults to True in production
    require_auth: Optional[bool] = Field(default=None, alias="REQUIRE_AUTH")

    admin_user: str = Field(default="admin", alias="ADMIN_USER")
    admin_pass: str = Field(default="", alias="ADMIN_PASS")

    # Identity provider
    auth_url: Optional[str] = Field(default=None, alias="AUTH_URL")
    auth_anon_key: Optional[str] = Field(default=None, alias="AUTH_ANON_KEY")
    auth_jwt_secret: Optional[str] = Field(default=None, alias="AUTH_JWT_SECRET")
    auth_jwt_audience: Optional[str] = Field(default=None, alias="AUTH_JWT_AUDIENCE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    allowed_origins: str = Field(default="", alias="ALLOWED_ORIGINS")

    @model_validator(mode="after")
    def _default_require_auth(self) -> "Settings":
        if self.require_auth is None:
            self.require_auth = self.environment == "production"
        return self

    @property
    def origin_list(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def load_settings() -> Settings:
    return Settings()
