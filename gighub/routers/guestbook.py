from __future__ import annotations

from html import escape
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse

from gighub.auth.csrf import CSRFGuard
from gighub.auth.deps import get_csrf_guard, get_guestbook, require_user
from gighub.schemas.guestbook import GuestbookForm
from gighub.services.guestbook import DEFAULT_MESSAGE, GuestbookStore
from gighub.utils.html import csrf_field, html_page


router = APIRouter(prefix="/guestbook", tags=["guestbook"], dependencies=[Depends(require_user)])


@router.get("", response_class=HTMLResponse)
def show_guestbook(
    request: Request,
    response: Response,
    guestbook: GuestbookStore = Depends(get_guestbook),
    csrf: CSRFGuard = Depends(get_csrf_guard),
) -> str:
    message = guestbook.get_message() or DEFAULT_MESSAGE
    token = csrf.token_for(request, response)
    body = f"""<p>{escape(message)}</p>
    <form action="/guestbook" method="post">
      {csrf_field(token)}
      <label>Message: <input type="text" name="message" required></label>
      <button type="submit">Save</button>
    </form>
    <form action="/logout" method="post">
      {csrf_field(token)}
      <button type="submit">Logout</button>
    </form>"""
    return html_page("Guestbook", body)


@router.post("")
def update_guestbook(
    form: Annotated[GuestbookForm, Form()],
    guestbook: GuestbookStore = Depends(get_guestbook),
) -> RedirectResponse:
    guestbook.upsert_message(form.message)
    return RedirectResponse(url="/guestbook", status_code=status.HTTP_303_SEE_OTHER)
