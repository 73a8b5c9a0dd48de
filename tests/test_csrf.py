import pytest
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from gighub.auth.csrf import HEADER_NAME, CSRFGuard
from gighub.errors import CSRFError


@pytest.fixture
def guarded():
    guard = CSRFGuard(cookie_name="csrf_token", exempt_paths=["/admin"])
    effects = []
    app = FastAPI(dependencies=[Depends(guard.protect)])

    @app.exception_handler(CSRFError)
    async def csrf_handler(request: Request, exc: CSRFError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.get("/token")
    def token(request: Request, response: Response) -> dict:
        return {"token": guard.token_for(request, response)}

    @app.post("/submit")
    def submit() -> dict:
        effects.append("submit")
        return {"ok": True}

    @app.post("/admin")
    def admin() -> dict:
        effects.append("admin")
        return {"ok": True}

    @app.post("/admin/reset")
    def admin_reset() -> dict:
        effects.append("admin/reset")
        return {"ok": True}

    with TestClient(app) as client:
        yield client, effects


def fetch_token(client):
    return client.get("/token").json()["token"]


def test_token_is_stable_until_rotated(guarded):
    client, _ = guarded

    first = fetch_token(client)

    assert first == client.cookies.get("csrf_token")
    assert fetch_token(client) == first


def test_post_without_token_is_rejected_before_the_handler(guarded):
    client, effects = guarded
    fetch_token(client)

    response = client.post("/submit", data={"field": "value"})

    assert response.status_code == 403
    assert response.json() == {"detail": "Missing CSRF token."}
    assert effects == []


def test_post_without_cookie_is_rejected(guarded):
    client, effects = guarded

    response = client.post("/submit", data={"csrf_token": "guessed"})

    assert response.status_code == 403
    assert effects == []


def test_mismatched_token_is_rejected(guarded):
    client, effects = guarded
    fetch_token(client)

    response = client.post("/submit", data={"csrf_token": "forged"})

    assert response.status_code == 403
    assert response.json() == {"detail": "Invalid CSRF token."}
    assert effects == []


def test_matching_form_field_is_accepted(guarded):
    client, effects = guarded
    token = fetch_token(client)

    response = client.post("/submit", data={"csrf_token": token})

    assert response.status_code == 200
    assert effects == ["submit"]


def test_matching_header_is_accepted(guarded):
    client, effects = guarded
    token = fetch_token(client)

    response = client.post("/submit", headers={HEADER_NAME: token}, json={})

    assert response.status_code == 200
    assert effects == ["submit"]


@pytest.mark.parametrize("path", ["/admin", "/admin/"])
def test_exempt_path_skips_the_check(guarded, path):
    client, effects = guarded

    response = client.post(path, follow_redirects=True)

    assert response.status_code == 200
    assert effects == ["admin"]


def test_exemption_does_not_cover_subpaths(guarded):
    client, effects = guarded

    response = client.post("/admin/reset")

    assert response.status_code == 403
    assert effects == []
