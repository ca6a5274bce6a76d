from datetime import UTC, date, datetime

from planner.config import Settings


def test_from_env_reads_planner_variables() -> None:
    settings = Settings.from_env(
        {
            "PLANNER_TIMEZONE": "UTC",
            "PLANNER_LOG_LEVEL": "DEBUG",
            "PLANNER_ADMIN_UID": "root-uid",
            "PLANNER_ADMIN_EMAIL": "root@example.org",
        }
    )

    assert settings.timezone == "UTC"
    assert settings.log_level == "DEBUG"
    assert settings.admin_uid == "root-uid"
    assert settings.admin_email == "root@example.org"


def test_from_env_defaults() -> None:
    settings = Settings.from_env({"PLANNER_ADMIN_UID": ""})

    assert settings.timezone == "Europe/Brussels"
    assert settings.admin_uid is None


def test_today_fn_uses_local_date() -> None:
    late_evening = datetime(2024, 6, 9, 23, 30, tzinfo=UTC)

    brussels = Settings().today_fn(lambda: late_evening)
    utc = Settings(timezone="UTC").today_fn(lambda: late_evening)

    assert brussels() == date(2024, 6, 10)
    assert utc() == date(2024, 6, 9)
