import pytest

from config import Config


def test_validate_reports_missing_settings(monkeypatch):
    monkeypatch.setattr(Config, 'SUPABASE_URL', '')
    monkeypatch.setattr(Config, 'SUPABASE_KEY', '')

    with pytest.raises(RuntimeError, match="SUPABASE_URL, SUPABASE_KEY"):
        Config.validate()


def test_validate_passes_with_settings(monkeypatch):
    monkeypatch.setattr(Config, 'SUPABASE_URL', 'https://project.supabase.co')
    monkeypatch.setattr(Config, 'SUPABASE_KEY', 'anon-key')

    Config.validate()


def test_auth_timeout_within_bounds():
    assert 5 <= Config.AUTH_TIMEOUT_SECONDS <= 10
