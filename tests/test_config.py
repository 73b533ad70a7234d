import importlib

import pytest

from app.config import Settings


def _reload_config(monkeypatch, **env):
    for key in ("QUEUE_SIZE", "MAX_MESSAGE_SIZE", "MAX_AUTHOR_COUNT", "MAX_AUTHOR_SIZE", "MAX_AGE", "API_KEY"):
        monkeypatch.delenv(key, raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    cfg_mod = importlib.import_module("app.config")
    return importlib.reload(cfg_mod)


def test_defaults_and_buffer_config(monkeypatch):
    cfg_mod = _reload_config(monkeypatch, API_KEY="k")
    s = cfg_mod.Settings()
    assert (s.queue_size, s.max_message_size, s.max_author_count, s.max_age_minutes) == (100, 1024, 50, 5)
    assert s.buffer_config().max_age == 300.0
    s.validate()


def test_env_overrides_and_legacy_author_name(monkeypatch):
    cfg_mod = _reload_config(monkeypatch, API_KEY="k", QUEUE_SIZE="2", MAX_AUTHOR_SIZE="7", MAX_AGE="1")
    s = cfg_mod.Settings()
    assert s.queue_size == 2
    assert s.max_author_count == 7
    assert s.buffer_config().max_age == 60.0

    cfg_mod = _reload_config(monkeypatch, MAX_AUTHOR_SIZE="7", MAX_AUTHOR_COUNT="3")
    assert cfg_mod.Settings().max_author_count == 3


def test_unparsable_number_fails_at_load(monkeypatch):
    with pytest.raises(ValueError):
        _reload_config(monkeypatch, QUEUE_SIZE="lots")
    _reload_config(monkeypatch)


def test_validate_requires_api_key():
    with pytest.raises(RuntimeError):
        Settings(api_key=None).validate()
    with pytest.raises(RuntimeError):
        Settings(api_key="").validate()


def test_validate_rejects_negative_limits():
    with pytest.raises(RuntimeError):
        Settings(api_key="k", queue_size=-1).validate()
