"""Configuration loading from environment variables and the .env file."""

from datetime import date, time
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class RunMode(str, Enum):
    """Run mode."""

    PAPER = "paper"
    LIVE = "live"


class LogFormat(str, Enum):
    """Log output format."""

    JSON = "json"
    CONSOLE = "console"


class Settings(BaseSettings):
    """Trading discipline policy and runtime settings.

    Loaded from environment variables and the .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==================== Run mode ====================
    mode: RunMode = Field(default=RunMode.PAPER, description="paper or live")

    # ==================== Broker ====================
    broker_base_url: str = Field(default="", description="Broker REST endpoint")
    broker_api_key: str = Field(default="", description="Broker API key")
    broker_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Upper bound for one order submission",
    )
    paper_slippage_bps: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Simulated slippage for paper fills (basis points)",
    )

    # ==================== Risk policy ====================
    account_equity: float = Field(
        default=10_000.0,
        gt=0.0,
        description="Account equity used for sizing",
    )
    risk_percent_per_trade: float = Field(
        default=0.02,
        gt=0.0,
        le=0.1,
        description="Max risk per trade as a fraction of equity (0.02 = 2%)",
    )
    max_consecutive_losses: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Consecutive losing trades that lock trading for the day",
    )
    daily_loss_cap: float = Field(
        default=500.0,
        gt=0.0,
        description="Summed daily losses that lock trading for the day; reaching the cap exactly locks",
    )
    scale_out_ratio: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Share of the position sold at target 1",
    )
    reward_risk_multiple: float = Field(
        default=1.0,
        gt=0.0,
        le=10.0,
        description="Target 1 distance in R-multiples",
    )
    runner_trailing_rule: str = Field(
        default="trail stop under prior 5-minute bar low",
        description="Instruction attached to the runner after target 1",
    )

    # ==================== Market calendar ====================
    market_timezone: str = Field(default="America/New_York", description="Exchange timezone")
    premarket_start: time = Field(default=time(4, 0), description="Pre-market session start")
    market_open: time = Field(default=time(9, 30), description="Regular session open")
    market_close: time = Field(default=time(16, 0), description="Regular session close")
    no_trade_zone_minutes: int = Field(
        default=15,
        ge=0,
        le=120,
        description="Opening range settling window after the open",
    )
    market_holidays: Annotated[list[date], NoDecode] = Field(
        default_factory=list,
        description="Exchange holidays (full closures)",
    )

    # ==================== Logging ====================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="Log output format",
    )

    # ==================== Storage ====================
    session_dir: Path = Field(
        default=Path("data/sessions"),
        description="Trading session snapshot directory",
    )
    journal_dir: Path = Field(
        default=Path("data/journal"),
        description="Event journal directory",
    )

    @field_validator("session_dir", "journal_dir", mode="before")
    @classmethod
    def parse_dir(cls, v: str | Path) -> Path:
        """Convert strings to Path objects."""
        return Path(v) if isinstance(v, str) else v

    @field_validator("market_holidays", mode="before")
    @classmethod
    def parse_holidays(cls, v: object) -> object:
        """Accept a comma separated list of ISO dates."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def check_session_order(self) -> "Settings":
        """Pre-market, open and close must be in chronological order."""
        if not self.premarket_start <= self.market_open < self.market_close:
            raise ValueError("expected premarket_start <= market_open < market_close")
        return self

    def ensure_directories(self) -> None:
        """Make sure storage directories exist."""
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self.journal_dir.mkdir(parents=True, exist_ok=True)

    @property
    def is_paper_mode(self) -> bool:
        return self.mode == RunMode.PAPER

    @property
    def is_live_mode(self) -> bool:
        return self.mode == RunMode.LIVE

    def validate_for_live(self) -> list[str]:
        """Return the settings live mode needs but which are missing."""
        missing = []
        if not self.broker_base_url:
            missing.append("BROKER_BASE_URL")
        if not self.broker_api_key:
            missing.append("BROKER_API_KEY")
        return missing


# Global settings instance (lazy)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from the environment."""
    global _settings
    _settings = Settings()
    return _settings
