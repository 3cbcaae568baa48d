"""
middleware/selected_client.py
-----------------------------
Re-validates the session's selected client on every request.

A grant can be revoked, or a client deleted, between two requests of the
same session. Before any handler runs, this middleware re-checks the stored
selection for the signed-in user; if it is no longer valid the selection is
cleared and a warning is flashed. It never blocks the request: database
errors are logged and the request proceeds.

Must sit inside SessionMiddleware so request.session is populated.
"""

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.api.web import flash
from app.core.logging import get_logger
from app.dependencies import SESSION_USER_KEY
from app.models.user import User
from app.services.access_grants import AccessGrantStore
from app.services.authorization import ClientPolicy
from app.services.selection import SESSION_ID_KEY, ClearReason, ClientSelection

logger = get_logger(__name__)

CLEAR_NOTICES = {
    ClearReason.CLIENT_MISSING: "The selected client no longer exists and has been cleared.",
    ClearReason.ACCESS_REVOKED: "You no longer have access to the selected client. Selection cleared.",
}


class SelectedClientMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        session = request.session
        store = request.app.state.selection_store
        user_id = session.get(SESSION_USER_KEY)
        sid = session.get(SESSION_ID_KEY)
        if user_id is None or sid is None or store.get(sid) is None:
            return await call_next(request)

        session_factory = request.app.state.session_factory
        try:
            async with session_factory() as db:
                user = await db.get(User, user_id)
                # Unknown users are rejected later by get_current_user.
                if user is not None:
                    selection = ClientSelection(
                        session, db, ClientPolicy(AccessGrantStore(db)), store
                    )
                    reason = await selection.revalidate(user)
                    if reason is not None:
                        flash(session, "warning", CLEAR_NOTICES[reason])
        except SQLAlchemyError as exc:
            logger.error(
                "Selected client revalidation failed",
                path=request.url.path,
                error=str(exc),
            )

        return await call_next(request)
