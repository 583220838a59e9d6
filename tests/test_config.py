import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from beautypro.clients.supabase import SupabaseClient
from beautypro.config import Settings


def test_defaults_run_against_mock_backend(monkeypatch) -> None:
    for name in list(os.environ):
        if name.startswith("BEAUTYPRO_"):
            monkeypatch.delenv(name)

    settings = Settings()

    assert settings.use_mock_data is True
    assert settings.supabase_url is None
    assert settings.supabase_timeout is None
    assert settings.timezone == "UTC"
    assert settings.login_path == "/auth/login"
    assert settings.realtime_heartbeat_interval == 25.0
    assert settings.session_idle_timeout == 8 * 60 * 60


def test_environment_overrides_use_prefix(monkeypatch) -> None:
    monkeypatch.setenv("BEAUTYPRO_SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("BEAUTYPRO_SUPABASE_KEY", "anon-key")
    monkeypatch.setenv("BEAUTYPRO_USE_MOCK_DATA", "false")
    monkeypatch.setenv("BEAUTYPRO_SUPABASE_TIMEOUT", "7.5")
    monkeypatch.setenv("BEAUTYPRO_TIMEZONE", "America/New_York")
    monkeypatch.setenv("BEAUTYPRO_CORS_ORIGINS", '["https://salon.example.com"]')

    settings = Settings()

    assert str(settings.supabase_url).rstrip("/") == "https://project.supabase.co"
    assert settings.supabase_key == "anon-key"
    assert settings.use_mock_data is False
    assert settings.supabase_timeout == 7.5
    assert settings.timezone == "America/New_York"
    assert [str(origin).rstrip("/") for origin in settings.cors_origins] == ["https://salon.example.com"]


def test_client_without_url_stays_in_mock_mode() -> None:
    client = SupabaseClient(None, api_key="anon-key", use_mock_data=False)

    assert client.use_mock_data is True
    assert client.base_url is None


def test_cors_origins_accept_comma_separated_list(monkeypatch) -> None:
    monkeypatch.setenv("BEAUTYPRO_CORS_ORIGINS", "https://a.example.com, https://b.example.com")

    settings = Settings()

    assert [str(origin).rstrip("/") for origin in settings.cors_origins] == [
        "https://a.example.com",
        "https://b.example.com",
    ]
