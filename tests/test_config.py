import pytest

from meshmeet.config import Settings


def test_defaults():
    settings = Settings.from_env({})
    assert (settings.host, settings.port, settings.log_level, settings.public_url) == ("0.0.0.0", 8080, "info", None)


def test_from_env():
    settings = Settings.from_env({
        "MESHMEET_HOST": "127.0.0.1",
        "MESHMEET_PORT": "3000",
        "MESHMEET_LOG_LEVEL": "DEBUG",
        "MESHMEET_PUBLIC_URL": "https://meet.example.com/",
    })
    assert settings == Settings("127.0.0.1", 3000, "debug", "https://meet.example.com")


def test_bad_port():
    with pytest.raises(ValueError):
        Settings.from_env({"MESHMEET_PORT": "eighty"})
