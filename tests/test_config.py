"""Tests for todoeveryday.config — Settings parsing."""

from todoeveryday.config import Settings, settings


def test_env_loaded_from_conftest():
    assert settings.TELEGRAM_BOT_TOKEN == "fake-token-for-tests"
    assert settings.ALLOWED_USER_IDS == [12345]


def test_user_ids_parsing():
    s = Settings(TELEGRAM_BOT_TOKEN="t", ALLOWED_USER_IDS=" 1, 2 ,,3 ")
    assert s.ALLOWED_USER_IDS == [1, 2, 3]
    assert Settings(TELEGRAM_BOT_TOKEN="t", ALLOWED_USER_IDS="").ALLOWED_USER_IDS == []


def test_flag_parsing():
    s = Settings(
        TELEGRAM_BOT_TOKEN="t",
        AUTO_CARRYOVER="no",
        CREATE_WEEKEND_DAYS="Yes",
        DEBUG_MODE="1",
        COMPLETION_SOUND="off",
    )
    assert s.AUTO_CARRYOVER is False
    assert s.CREATE_WEEKEND_DAYS is True
    assert s.DEBUG_MODE is True
    assert s.COMPLETION_SOUND is False


def test_defaults():
    s = Settings(TELEGRAM_BOT_TOKEN="t")
    assert s.DATABASE_PATH == "data/todoeveryday.db"
    assert s.SHOW_CARRYOVER_PROMPT is True
    assert s.TIMEZONE == "UTC"
    assert (s.ROLLOVER_CHECK_HOUR, s.ROLLOVER_CHECK_MINUTE) == (0, 5)
