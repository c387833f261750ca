"""Minimal server-rendered pages.

Dashboard prefixes are bound to one role each. A visitor without a valid
session cookie is sent to `/login`; a signed-in user with another role is
sent to `/unauthorized`.
"""

import json
from html import escape
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, RedirectResponse

from .. import models
from ..auth import get_optional_user
from ..models import Role

router = APIRouter(tags=["pages"], include_in_schema=False)

ROLE_BY_PREFIX = {
    "/admin": Role.ADMIN,
    "/sub-admin": Role.SUB_ADMIN,
    "/teacher": Role.TRAINER,
    "/student": Role.STUDENT,
}
HOME_BY_ROLE = {role: prefix for prefix, role in ROLE_BY_PREFIX.items()}

_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8" />
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 32px; }}
    a {{ color: #6366f1; }}
    .card {{ max-width: 640px; padding: 16px; border: 1px solid #ddd; border-radius: 8px; }}
    label {{ display: block; margin-top: 8px; }}
  </style>
</head>
<body>
  <div class="card">
    <h1>{title}</h1>
    {body}
  </div>
</body>
</html>
"""

_LOGIN_FORM = """
<form id="login">
  <label>Email <input name="email" type="email" required /></label>
  <label>Password <input name="password" type="password" required /></label>
  <p><button type="submit">Sign in</button></p>
  <p id="error" style="color: #c00"></p>
</form>
<script>
  const homes = {homes};
  document.getElementById("login").addEventListener("submit", async (ev) => {{
    ev.preventDefault();
    const form = new FormData(ev.target);
    const res = await fetch("/api/auth/login", {{
      method: "POST",
      headers: {{"Content-Type": "application/json"}},
      body: JSON.stringify({{email: form.get("email"), password: form.get("password")}}),
    }});
    const body = await res.json();
    if (!body.success) {{
      document.getElementById("error").textContent = body.error;
      return;
    }}
    window.location = homes[body.data.user.role] || "/";
  }});
</script>
"""


def _page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(_PAGE.format(title=escape(title), body=body))


def _dashboard(prefix: str, user: Optional[models.User], section: str = ""):
    if user is None:
        return RedirectResponse(url=f"/login?next={prefix}", status_code=303)
    if user.role != ROLE_BY_PREFIX[prefix]:
        return RedirectResponse(url="/unauthorized", status_code=303)
    title = f"{user.role.value.replace('_', ' ').title()} dashboard"
    body = (
        f"<p>Signed in as <strong>{escape(user.name)}</strong> ({escape(user.email)}).</p>"
        + (f"<p>Section: <code>{escape(section)}</code></p>" if section else "")
        + '<p>Data for this page is served by the <a href="/docs">JSON API</a>.</p>'
    )
    return _page(title, body)


@router.get("/", response_class=HTMLResponse)
def home(user: Optional[models.User] = Depends(get_optional_user)):
    if user is not None:
        return RedirectResponse(url=HOME_BY_ROLE[user.role], status_code=303)
    return _page(
        "E-learning platform",
        '<p><a href="/login">Sign in</a> to reach your dashboard.</p>'
        '<p>API documentation: <a href="/docs">Swagger UI</a>.</p>',
    )


@router.get("/login", response_class=HTMLResponse)
def login_page():
    homes = json.dumps({role.value: prefix for role, prefix in HOME_BY_ROLE.items()})
    return _page("Sign in", _LOGIN_FORM.format(homes=homes))


@router.get("/unauthorized", response_class=HTMLResponse)
def unauthorized_page():
    return HTMLResponse(
        _PAGE.format(title="Unauthorized", body='<p>Your role cannot open this page.</p><p><a href="/">Home</a></p>'),
        status_code=403,
    )


def _register_dashboard(prefix: str) -> None:
    def dashboard(user: Optional[models.User] = Depends(get_optional_user)):
        return _dashboard(prefix, user)

    def dashboard_section(section: str, user: Optional[models.User] = Depends(get_optional_user)):
        return _dashboard(prefix, user, section)

    router.add_api_route(prefix, dashboard, methods=["GET"], response_class=HTMLResponse)
    router.add_api_route(prefix + "/{section:path}", dashboard_section, methods=["GET"], response_class=HTMLResponse)


for _prefix in ROLE_BY_PREFIX:
    _register_dashboard(_prefix)
