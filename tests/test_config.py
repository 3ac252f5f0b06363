import logging
from datetime import timedelta
from pathlib import Path

import pytest

from onthisday.config import Settings, parse_directory_list, parse_interval_hours


def test_parse_directory_list():
    assert parse_directory_list("/photos; /videos ;;") == [Path("/photos"), Path("/videos")]
    assert parse_directory_list("") == []
    assert parse_directory_list(None) == []


@pytest.mark.parametrize("raw,expected", [(None, 6.0), ("", 6.0), ("12", 12.0), ("0.5", 0.5)])
def test_parse_interval_hours(raw, expected):
    assert parse_interval_hours(raw) == expected


@pytest.mark.parametrize("raw", ["soon", "-1", "0"])
def test_bad_interval_warns_and_defaults(raw, caplog):
    with caplog.at_level(logging.WARNING):
        assert parse_interval_hours(raw) == 6.0
    assert "RESCAN_INTERVAL_HOURS" in caplog.text


def test_settings_from_env():
    settings = Settings.from_env({
        "PHOTO_DIRECTORIES": "/a;/b",
        "RESCAN_INTERVAL_HOURS": "2",
        "DATABASE_PATH": "/data/index.db",
        "INDEX_WORKERS": "3",
        "INDEX_HASH_FILES": "false",
    })

    assert settings.photo_directories == [Path("/a"), Path("/b")]
    assert settings.rescan_interval == timedelta(hours=2)
    assert settings.database_path == Path("/data/index.db")
    assert settings.max_workers == 3
    assert settings.hash_files is False


def test_settings_defaults():
    settings = Settings.from_env({})

    assert settings.photo_directories == []
    assert settings.rescan_interval == timedelta(hours=6)
    assert settings.database_path == Path("onthisday.db")
    assert settings.max_workers >= 1
    assert settings.hash_files is True
