from typing import List

from fastapi import APIRouter, Depends, HTTPException

from beautypro.dependencies.services import get_auth_service, get_calendar_state, get_session
from beautypro.schemas.appointment import Appointment
from beautypro.schemas.auth import AuthUser
from beautypro.schemas.catalog import Service, Stylist
from beautypro.services import AuthService
from beautypro.services.exceptions import ServiceError
from beautypro.services.session import SessionState
from beautypro.views.calendar import CalendarState

router = APIRouter()


async def _mounted_state(session: SessionState, state: CalendarState) -> CalendarState:
    if session.user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    await state.mount()
    return state


@router.get("/appointments", response_model=List[Appointment])
async def list_appointments(
    session: SessionState = Depends(get_session),
    state: CalendarState = Depends(get_calendar_state),
):
    return (await _mounted_state(session, state)).appointments


@router.get("/services", response_model=List[Service])
async def list_services(
    session: SessionState = Depends(get_session),
    state: CalendarState = Depends(get_calendar_state),
):
    return (await _mounted_state(session, state)).services


@router.get("/stylists", response_model=List[Stylist])
async def list_stylists(
    session: SessionState = Depends(get_session),
    state: CalendarState = Depends(get_calendar_state),
):
    return (await _mounted_state(session, state)).stylists


@router.get("/me", response_model=AuthUser)
async def current_user(
    session: SessionState = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
):
    if session.user is None or not session.access_token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user = await auth.get_user(session.access_token)
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if user is None:
        raise HTTPException(status_code=401, detail="Session expired")
    return user
