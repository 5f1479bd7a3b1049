"""Environment driven settings for the airline reservation system."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

PROMOTION_FARE_POLICIES = ("original", "recompute")


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, usually built with :meth:`from_env`."""

    db_url: str = "sqlite+pysqlite:///airline.db"
    db_echo: bool = False
    db_busy_timeout: float = 30.0
    max_retries: int = 3
    pnr_attempts: int = 10
    promotion_fare: str = "original"
    log_level: str = "INFO"
    default_economy_fare: float = 850.0
    default_business_fare: float = 2040.0

    def __post_init__(self) -> None:
        if self.promotion_fare not in PROMOTION_FARE_POLICIES:
            raise ValueError(
                f"promotion_fare must be one of {PROMOTION_FARE_POLICIES}, got '{self.promotion_fare}'"
            )
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.pnr_attempts < 1:
            raise ValueError("pnr_attempts must be at least 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            db_url=env.get("AIRLINE_DB_URL", defaults.db_url),
            db_echo=_env_bool(env.get("AIRLINE_DB_ECHO"), defaults.db_echo),
            db_busy_timeout=float(env.get("AIRLINE_DB_BUSY_TIMEOUT", defaults.db_busy_timeout)),
            max_retries=int(env.get("AIRLINE_MAX_RETRIES", defaults.max_retries)),
            pnr_attempts=int(env.get("AIRLINE_PNR_ATTEMPTS", defaults.pnr_attempts)),
            promotion_fare=env.get("AIRLINE_PROMOTION_FARE", defaults.promotion_fare).strip().lower(),
            log_level=env.get("AIRLINE_LOG_LEVEL", defaults.log_level).upper(),
            default_economy_fare=float(
                env.get("AIRLINE_DEFAULT_ECONOMY_FARE", defaults.default_economy_fare)
            ),
            default_business_fare=float(
                env.get("AIRLINE_DEFAULT_BUSINESS_FARE", defaults.default_business_fare)
            ),
        )


def setup_logging(level: str | int = "INFO") -> None:
    """Configure root logging for the CLI and API entry points."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler()])


__all__ = ["LOG_FORMAT", "PROMOTION_FARE_POLICIES", "Settings", "setup_logging"]
