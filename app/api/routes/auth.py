"""
api/routes/auth.py
------------------
Session authentication endpoints.

GET  /login   — Guest only. Describe the login form and pending flashes.
POST /login   — Guest only. Exchange form credentials for a session.
POST /logout  — Destroy the session (and with it the selected client).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.web import INTENDED_KEY, pop_flashes, redirect_to
from app.core.exceptions import AuthenticationFailure
from app.core.logging import get_logger
from app.core.security import new_session_id
from app.db.session import get_db
from app.dependencies import SESSION_USER_KEY, get_current_user, get_optional_user
from app.models.user import User
from app.schemas.dashboard import LoginError, LoginPage
from app.services.selection import SESSION_ID_KEY
from app.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(tags=["Authentication"])


@router.get("/login", response_model=LoginPage, summary="Login form")
async def show_login_form(
    request: Request,
    user: Annotated[User | None, Depends(get_optional_user)],
):
    if user is not None:
        return redirect_to("/dashboard")
    return LoginPage(flashes=pop_flashes(request.session))


@router.post(
    "/login",
    summary="Authenticate with email and password",
    responses={status.HTTP_401_UNAUTHORIZED: {"model": LoginError}},
)
async def login(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User | None, Depends(get_optional_user)],
    email: Annotated[str, Form(min_length=1)],
    password: Annotated[str, Form(min_length=1)],
):
    """
    On success the session is regenerated (old contents dropped) and the
    browser is sent to the page it originally asked for, else /dashboard.
    On failure the form is answered with a field error on `email`.
    """
    if user is not None:
        return redirect_to("/dashboard")

    authenticated = await UserService.authenticate(db, email, password)
    if authenticated is None:
        failure = AuthenticationFailure()
        logger.info("Login failed", email=email.strip().lower())
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=LoginError(errors={"email": failure.message}, email=email).model_dump(),
        )

    intended = request.session.get(INTENDED_KEY) or "/dashboard"
    request.app.state.selection_store.discard(request.session.get(SESSION_ID_KEY))
    request.session.clear()
    request.session[SESSION_USER_KEY] = authenticated.id
    request.session[SESSION_ID_KEY] = new_session_id()

    logger.info("Login succeeded", user_id=authenticated.id, role=authenticated.role)
    return redirect_to(intended)


@router.post("/logout", summary="End the session")
async def logout(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
):
    request.app.state.selection_store.discard(request.session.get(SESSION_ID_KEY))
    request.session.clear()
    logger.info("Logged out", user_id=current_user.id)
    return redirect_to("/")
