import logging

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from beautypro.config import Settings, get_settings
from beautypro.dependencies.services import (
    get_auth_service,
    get_session,
    get_session_id,
    get_session_store,
)
from beautypro.services import AuthService
from beautypro.services.exceptions import AuthenticationError, ServiceError
from beautypro.services.session import SessionState, SessionStore
from beautypro.views.dashboard import DashboardShell, RedirectNavigator
from beautypro.views.render import render_login

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/login", response_class=HTMLResponse)
async def login_page() -> HTMLResponse:
    return HTMLResponse(render_login())


@router.post("/login")
async def login(
    email: str = Form(...),
    password: str = Form(...),
    auth: AuthService = Depends(get_auth_service),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    session_id, state = store.create()
    state.set_is_loading(True)
    try:
        auth_session = await auth.sign_in(email, password)
    except AuthenticationError as exc:
        store.discard(session_id)
        return HTMLResponse(render_login(error=str(exc), email=email), status_code=401)
    except ServiceError as exc:
        store.discard(session_id)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    state.set_user(auth_session.user, auth_session.access_token)
    state.set_is_loading(False)
    response = RedirectResponse("/dashboard", status_code=303)
    response.set_cookie(
        settings.session_cookie_name, session_id, httponly=True, samesite="lax"
    )
    return response


@router.post("/sign-out")
async def sign_out(
    session_id: str | None = Depends(get_session_id),
    session: SessionState = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    navigator = RedirectNavigator()
    shell = DashboardShell(session, navigator, auth, login_path=settings.login_path)
    try:
        await shell.sign_out()
    except ServiceError as exc:
        logger.warning("Remote sign-out failed: %s", exc)
    finally:
        store.discard(session_id)

    response = RedirectResponse(navigator.location or settings.login_path, status_code=303)
    response.delete_cookie(settings.session_cookie_name)
    return response
