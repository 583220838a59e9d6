from __future__ import annotations

from functools import lru_cache
from zoneinfo import ZoneInfo

from fastapi import Depends, Request

from beautypro.clients.realtime import RealtimeClient
from beautypro.clients.supabase import SupabaseClient
from beautypro.config import Settings, get_settings
from beautypro.services import AppointmentService, AuthService, CatalogService
from beautypro.services.realtime import AppointmentChangeFeed
from beautypro.services.session import SessionState, SessionStore, session_store
from beautypro.views.calendar import CalendarState, CalendarView


@lru_cache(maxsize=1)
def get_supabase_client_cached() -> SupabaseClient:
    settings = get_settings()
    return SupabaseClient(
        settings.supabase_url,
        api_key=settings.supabase_key,
        timeout=settings.supabase_timeout,
        use_mock_data=settings.use_mock_data,
    )


@lru_cache(maxsize=1)
def get_realtime_client_cached() -> RealtimeClient | None:
    settings = get_settings()
    client = get_supabase_client_cached()
    if client.use_mock_data or not client.api_key:
        return None
    return RealtimeClient(
        client.base_url,
        client.api_key,
        heartbeat_interval=settings.realtime_heartbeat_interval,
    )


@lru_cache(maxsize=1)
def get_calendar_state_cached() -> CalendarState:
    client = get_supabase_client_cached()
    return CalendarState(
        AppointmentService(client),
        CatalogService(client),
        AppointmentChangeFeed(client, get_realtime_client_cached()),
    )


def get_supabase_client(settings: Settings = Depends(get_settings)) -> SupabaseClient:
    return get_supabase_client_cached()


def get_auth_service(
    client: SupabaseClient = Depends(get_supabase_client),
) -> AuthService:
    return AuthService(client)


def get_session_store() -> SessionStore:
    return session_store


def get_session_id(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


def get_session(
    session_id: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
) -> SessionState:
    """Registered state for the caller's cookie, or a fresh unauthenticated one."""
    return store.get(session_id) or SessionState()


def get_calendar_state() -> CalendarState:
    """Shared calendar data; routes mount it only after the session guard passes."""
    return get_calendar_state_cached()


def get_calendar_view(
    session: SessionState,
    state: CalendarState,
    settings: Settings,
) -> CalendarView:
    if session.calendar is None or session.calendar.state is not state:
        session.calendar = CalendarView(state, tz=ZoneInfo(settings.timezone))
    return session.calendar
