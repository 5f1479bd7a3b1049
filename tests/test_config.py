import pytest

from airline_reservation.config import Settings


def test_defaults_without_environment():
    settings = Settings.from_env({})
    assert settings.db_url == "sqlite+pysqlite:///airline.db"
    assert settings.max_retries == 3
    assert settings.promotion_fare == "original"
    assert (settings.default_economy_fare, settings.default_business_fare) == (850.0, 2040.0)


def test_environment_overrides():
    settings = Settings.from_env(
        {
            "AIRLINE_DB_URL": "sqlite+pysqlite:///:memory:",
            "AIRLINE_DB_ECHO": "yes",
            "AIRLINE_MAX_RETRIES": "5",
            "AIRLINE_PROMOTION_FARE": "Recompute",
            "AIRLINE_LOG_LEVEL": "debug",
            "AIRLINE_DEFAULT_ECONOMY_FARE": "900",
        }
    )
    assert settings.db_echo is True
    assert settings.max_retries == 5
    assert settings.promotion_fare == "recompute"
    assert settings.log_level == "DEBUG"
    assert settings.default_economy_fare == 900.0


def test_invalid_values_are_rejected():
    with pytest.raises(ValueError):
        Settings(promotion_fare="cheapest")
    with pytest.raises(ValueError):
        Settings.from_env({"AIRLINE_MAX_RETRIES": "0"})
