from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from beautypro.config import Settings, get_settings
from beautypro.dependencies.services import (
    get_auth_service,
    get_calendar_state,
    get_calendar_view,
    get_session,
)
from beautypro.services import AuthService
from beautypro.services.session import SessionState
from beautypro.views.calendar import CalendarState, CalendarView
from beautypro.views.dashboard import DashboardShell, RedirectNavigator
from beautypro.views.render import render_calendar, render_dashboard

router = APIRouter()

DASHBOARD_PATH = "/dashboard"


@router.get("/", include_in_schema=False)
async def root() -> RedirectResponse:
    return RedirectResponse(DASHBOARD_PATH, status_code=303)


@router.get(DASHBOARD_PATH, response_class=HTMLResponse)
async def dashboard(
    session: SessionState = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
    state: CalendarState = Depends(get_calendar_state),
    settings: Settings = Depends(get_settings),
):
    navigator = RedirectNavigator()
    shell = DashboardShell(session, navigator, auth, login_path=settings.login_path)
    if not shell.mount():
        return RedirectResponse(navigator.location, status_code=303)

    await state.mount()
    view = get_calendar_view(session, state, settings)
    return HTMLResponse(
        render_dashboard(settings.app_name, session.user, render_calendar(view))
    )


async def _calendar_for(
    session: SessionState, state: CalendarState, settings: Settings
) -> Optional[CalendarView]:
    if session.user is None:
        return None
    await state.mount()
    return get_calendar_view(session, state, settings)


def _back_to_dashboard() -> RedirectResponse:
    return RedirectResponse(DASHBOARD_PATH, status_code=303)


@router.post("/dashboard/calendar/view")
async def change_view(
    view: str = Form(...),
    session: SessionState = Depends(get_session),
    state: CalendarState = Depends(get_calendar_state),
    settings: Settings = Depends(get_settings),
):
    calendar = await _calendar_for(session, state, settings)
    if calendar is None:
        return RedirectResponse(settings.login_path, status_code=303)
    try:
        calendar.set_view(view)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _back_to_dashboard()


@router.post("/dashboard/calendar/navigate")
async def navigate(
    action: str = Form(...),
    target: Optional[str] = Form(None),
    session: SessionState = Depends(get_session),
    state: CalendarState = Depends(get_calendar_state),
    settings: Settings = Depends(get_settings),
):
    calendar = await _calendar_for(session, state, settings)
    if calendar is None:
        return RedirectResponse(settings.login_path, status_code=303)
    try:
        calendar.navigate(action, date.fromisoformat(target) if target else None)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _back_to_dashboard()


@router.post("/dashboard/calendar/select/{appointment_id}")
async def select_appointment(
    appointment_id: str,
    session: SessionState = Depends(get_session),
    state: CalendarState = Depends(get_calendar_state),
    settings: Settings = Depends(get_settings),
):
    calendar = await _calendar_for(session, state, settings)
    if calendar is None:
        return RedirectResponse(settings.login_path, status_code=303)
    try:
        calendar.select_event(appointment_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail="Appointment not found") from exc
    return _back_to_dashboard()


@router.post("/dashboard/calendar/deselect")
async def deselect_appointment(
    session: SessionState = Depends(get_session),
    state: CalendarState = Depends(get_calendar_state),
    settings: Settings = Depends(get_settings),
):
    calendar = await _calendar_for(session, state, settings)
    if calendar is None:
        return RedirectResponse(settings.login_path, status_code=303)
    calendar.clear_selection()
    return _back_to_dashboard()
