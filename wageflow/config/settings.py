"""Application configuration settings."""

import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Optional


class OverlapCheckFailurePolicy(str, Enum):
    """
    What the overlap pre-check reports when existing absences cannot be loaded.

    FAIL_OPEN lets the caller continue (the database exclusion constraint
    still rejects real overlaps on insert). FAIL_CLOSED surfaces the failure.
    """

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


@dataclass
class AbsenceSettings:
    """Absence validation configuration."""

    overlap_check_failure_policy: OverlapCheckFailurePolicy = OverlapCheckFailurePolicy.FAIL_CLOSED

    # Statutory ceiling for parental bereavement leave after the event
    bereavement_window_weeks: int = 56


@dataclass
class SspSettings:
    """Statutory Sick Pay configuration."""

    waiting_days: int = 3

    # Sickness absences separated by this many days or fewer form one chain
    linking_gap_days: int = 56

    # How far back before the run start sickness history is read
    lookback_days: int = 365

    default_qualifying_days_per_week: int = 5


def _parse_failure_policy(raw: Optional[str]) -> OverlapCheckFailurePolicy:
    if not raw:
        return OverlapCheckFailurePolicy.FAIL_CLOSED
    try:
        return OverlapCheckFailurePolicy(raw.strip().lower())
    except ValueError:
        raise ValueError(
            f"ABSENCE_OVERLAP_CHECK_FAILURE_POLICY must be one of "
            f"{[p.value for p in OverlapCheckFailurePolicy]}, got {raw!r}"
        )


@dataclass
class Settings:
    """Main application settings."""

    # Application info
    app_name: str = "WageFlow Absence API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Absence rules
    absence: AbsenceSettings = field(default_factory=AbsenceSettings)

    # Statutory Sick Pay
    ssp: SspSettings = field(default_factory=SspSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", "WageFlow Absence API"),
            app_version=os.getenv("APP_VERSION", "1.0.0"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            absence=AbsenceSettings(
                overlap_check_failure_policy=_parse_failure_policy(
                    os.getenv("ABSENCE_OVERLAP_CHECK_FAILURE_POLICY")
                ),
                bereavement_window_weeks=int(os.getenv("BEREAVEMENT_WINDOW_WEEKS", "56")),
            ),
            ssp=SspSettings(
                waiting_days=int(os.getenv("SSP_WAITING_DAYS", "3")),
                linking_gap_days=int(os.getenv("SSP_LINKING_GAP_DAYS", "56")),
                lookback_days=int(os.getenv("SSP_LOOKBACK_DAYS", "365")),
                default_qualifying_days_per_week=int(
                    os.getenv("SSP_DEFAULT_QUALIFYING_DAYS_PER_WEEK", "5")
                ),
            ),
        )


# Singleton settings instance
_settings: Optional[Settings] = None


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
    get_settings.cache_clear()
