"""
Browser admin routes - Login and session-gated newsletter publishing.

- GET/POST /login - Login form; success sets the session cookie
- POST /admin/logout - Drop the session
- GET/POST /admin/newsletters - Publish form and its submission

Outcomes are reported through a short-lived flash cookie shown on the
next page, so reloading after a redirect never re-submits the form.
"""

import html
import uuid
from urllib.parse import quote, unquote

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from src.api.dependencies import (
    get_auth_gate,
    get_newsletter_publisher,
    get_session_administrator,
    get_session_id,
)
from src.api.errors import LOGIN_PATH
from src.config.settings import Settings, get_settings
from src.domain.auth import AuthGate
from src.domain.exceptions import DeliveryError, InvalidCredentials, PublishInProgress
from src.domain.models import AdministratorIdentity, NewsletterIssue
from src.domain.newsletters import NewsletterPublisher

router = APIRouter(tags=["admin"])

FLASH_COOKIE = "_flash"
NEWSLETTERS_PATH = "/admin/newsletters"


def _see_other(location: str, flash: str | None = None) -> RedirectResponse:
    response = RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)
    if flash is not None:
        response.set_cookie(FLASH_COOKIE, quote(flash), max_age=60, httponly=True, samesite="lax")
    return response


def _render(request: Request, title: str, body: str) -> HTMLResponse:
    """Render a bare page, consuming the pending flash message if any."""
    flash = request.cookies.get(FLASH_COOKIE)
    flash_html = f"<p><i>{html.escape(unquote(flash))}</i></p>" if flash else ""
    page = (
        "<!DOCTYPE html>\n"
        f'<html lang="en"><head><meta charset="utf-8"><title>{title}</title></head>'
        f"<body>{flash_html}{body}</body></html>"
    )
    response = HTMLResponse(page)
    if flash:
        response.delete_cookie(FLASH_COOKIE)
    return response


@router.get("/login", response_class=HTMLResponse, summary="Login form")
def login_form(request: Request) -> HTMLResponse:
    return _render(
        request,
        "Login",
        '<form action="/login" method="post">'
        '<label>Username <input type="text" name="username"></label>'
        '<label>Password <input type="password" name="password"></label>'
        '<button type="submit">Login</button>'
        "</form>",
    )


@router.post("/login", summary="Log in as an administrator")
def login(
    username: str = Form(...),
    password: str = Form(...),
    auth: AuthGate = Depends(get_auth_gate),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Open a session and redirect to the publish form."""
    try:
        session_id = auth.login(username, password)
    except InvalidCredentials:
        return _see_other(LOGIN_PATH, flash="Authentication failed")

    response = _see_other(NEWSLETTERS_PATH)
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return response


@router.post("/admin/logout", summary="Log out")
def logout(
    session_id: str | None = Depends(get_session_id),
    actor: AdministratorIdentity = Depends(get_session_administrator),
    auth: AuthGate = Depends(get_auth_gate),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    auth.logout(session_id)
    response = _see_other(LOGIN_PATH, flash="You have successfully logged out.")
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get(NEWSLETTERS_PATH, response_class=HTMLResponse, summary="Publish form")
def publish_newsletter_form(
    request: Request,
    actor: AdministratorIdentity = Depends(get_session_administrator),
) -> HTMLResponse:
    """Render the publish form with a fresh idempotency key."""
    idempotency_key = uuid.uuid4()
    return _render(
        request,
        "Publish Newsletter Issue",
        f'<form action="{NEWSLETTERS_PATH}" method="post">'
        '<label>Title <input type="text" name="title"></label>'
        '<label>Plain text content <textarea name="text_content" rows="20" cols="50">'
        "</textarea></label>"
        '<label>HTML content <textarea name="html_content" rows="20" cols="50">'
        "</textarea></label>"
        f'<input hidden type="text" name="idempotency_key" value="{idempotency_key}">'
        '<button type="submit">Publish</button>'
        "</form>",
    )


@router.post(NEWSLETTERS_PATH, summary="Publish a newsletter issue from the admin form")
def publish_newsletter(
    title: str = Form(..., min_length=1),
    text_content: str = Form(..., min_length=1),
    html_content: str = Form(..., min_length=1),
    idempotency_key: str | None = Form(default=None),
    actor: AdministratorIdentity = Depends(get_session_administrator),
    publisher: NewsletterPublisher = Depends(get_newsletter_publisher),
) -> RedirectResponse:
    """Publish and redirect back to the form with an informational flash."""
    issue = NewsletterIssue(title=title, text_content=text_content, html_content=html_content)
    try:
        summary = publisher.publish(issue, actor, idempotency_key=idempotency_key or None)
    except DeliveryError:
        return _see_other(NEWSLETTERS_PATH, flash="The newsletter issue could not be delivered.")
    except PublishInProgress:
        return _see_other(NEWSLETTERS_PATH, flash="The newsletter issue is still being published.")
    return _see_other(NEWSLETTERS_PATH, flash=summary.message)
