"""
Daily Overview Configuration

Single source of truth for the daily overview engine and its Leitstellenspiel
sources: remote endpoint, HTTP behaviour, cache validity and the bounded
concurrency used for schooling detail fetches.

Usage:
    from shared.config.overview_config import OverviewConfig

    config = OverviewConfig.from_env()
    window = config.cache_validity
    batch = config.DETAIL_BATCH_SIZE
"""

from dataclasses import dataclass
from datetime import timedelta
import os

COURSE_SOURCE_MODES = ("html", "api")


@dataclass
class OverviewConfig:
    """
    Configuration for the overview engine.

    All durations are in seconds unless otherwise specified.
    Can be overridden via environment variables (OVERVIEW_<CONSTANT_NAME>).
    """

    # ========================================
    # Remote service
    # ========================================

    BASE_URL: str = "https://www.leitstellenspiel.de"

    # Raw Cookie header of a logged-in browser session
    SESSION_COOKIE: str = ""

    # Per-request timeout (20 seconds)
    HTTP_TIMEOUT: int = 20

    # Threads bridging the blocking HTTP client into the event loop
    FETCH_WORKERS: int = 4

    # "html" scrapes /schoolings, "api" reads the structured payload
    COURSE_SOURCE_MODE: str = "html"

    # ========================================
    # Aggregation
    # ========================================

    # Cached overview stays valid for 5 minutes (never past midnight)
    CACHE_VALIDITY_SECONDS: int = 300

    # Schooling detail pages fetched per batch
    DETAIL_BATCH_SIZE: int = 3

    # Instructor free text only needs to contain the viewer name
    LOOSE_INSTRUCTOR_MATCH: bool = True

    @property
    def cache_validity(self) -> timedelta:
        return timedelta(seconds=self.CACHE_VALIDITY_SECONDS)

    @classmethod
    def from_env(cls):
        """
        Create OverviewConfig with values from environment variables.

        Environment variables override defaults.
        Variable names: OVERVIEW_<CONSTANT_NAME>

        Example:
            OVERVIEW_DETAIL_BATCH_SIZE=5
            OVERVIEW_LOOSE_INSTRUCTOR_MATCH=false
        """
        config = cls()

        for attr_name in dir(config):
            if not attr_name.isupper():
                continue
            env_value = os.getenv(f"OVERVIEW_{attr_name}")
            if env_value is None or env_value == "":
                continue

            default = getattr(config, attr_name)
            if isinstance(default, bool):
                setattr(config, attr_name, env_value.strip().lower() in ("1", "true", "yes", "on"))
            elif isinstance(default, int):
                try:
                    setattr(config, attr_name, int(env_value))
                except ValueError:
                    # Keep default
                    pass
            else:
                setattr(config, attr_name, env_value)

        return config

    def as_dict(self) -> dict:
        """Return all constants, with the session cookie masked."""
        values = {
            attr_name: getattr(self, attr_name)
            for attr_name in dir(self)
            if attr_name.isupper()
        }
        if values.get("SESSION_COOKIE"):
            values["SESSION_COOKIE"] = "***"
        return values

    def validate(self) -> list:
        """
        Validate configuration.

        Returns:
            list: List of validation warnings
        """
        warnings = []

        if self.DETAIL_BATCH_SIZE < 1:
            warnings.append(
                f"DETAIL_BATCH_SIZE ({self.DETAIL_BATCH_SIZE}) must be at least 1"
            )

        if self.CACHE_VALIDITY_SECONDS <= 0:
            warnings.append(
                f"CACHE_VALIDITY_SECONDS ({self.CACHE_VALIDITY_SECONDS}s) must be positive"
            )
        elif self.CACHE_VALIDITY_SECONDS > 86400:
            warnings.append(
                f"CACHE_VALIDITY_SECONDS ({self.CACHE_VALIDITY_SECONDS}s) exceeds one day; "
                "entries are dropped at midnight anyway"
            )

        if self.FETCH_WORKERS < 1:
            warnings.append(f"FETCH_WORKERS ({self.FETCH_WORKERS}) must be at least 1")

        if self.COURSE_SOURCE_MODE not in COURSE_SOURCE_MODES:
            warnings.append(
                f"COURSE_SOURCE_MODE '{self.COURSE_SOURCE_MODE}' is not one of {COURSE_SOURCE_MODES}"
            )

        if not self.SESSION_COOKIE:
            warnings.append("SESSION_COOKIE is empty; authenticated endpoints will fail")

        return warnings
