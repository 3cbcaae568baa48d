"""
api/web.py
----------
Session flash messages and redirect helpers shared by routes, middleware
and exception handlers.

Flash messages survive exactly one read: they are stored in the session
and removed by `pop_flashes`, which every page-like endpoint calls.
"""

from collections.abc import MutableMapping
from typing import Any
from urllib.parse import urlsplit

from fastapi import Request, status
from fastapi.responses import RedirectResponse

FLASH_KEY = "_flash"
INTENDED_KEY = "url.intended"


def flash(session: MutableMapping[str, Any], level: str, message: str) -> None:
    messages = list(session.get(FLASH_KEY, []))
    messages.append({"level": level, "message": message})
    session[FLASH_KEY] = messages


def pop_flashes(session: MutableMapping[str, Any]) -> list[dict[str, str]]:
    return session.pop(FLASH_KEY, [])


def redirect_to(path: str) -> RedirectResponse:
    return RedirectResponse(path, status_code=status.HTTP_303_SEE_OTHER)


def redirect_back(request: Request, default: str = "/clients") -> RedirectResponse:
    """
    Redirect to the page the request came from.
    Only the path of the Referer is used, and only when it points at this
    host, so a forged header cannot send users off-site.
    """
    referer = request.headers.get("referer")
    if referer:
        parts = urlsplit(referer)
        same_host = parts.netloc in ("", request.url.netloc)
        if same_host and parts.path.startswith("/") and not parts.path.startswith("//"):
            target = parts.path + (f"?{parts.query}" if parts.query else "")
            return redirect_to(target)
    return redirect_to(default)
