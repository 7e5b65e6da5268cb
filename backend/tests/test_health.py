from fastapi.testclient import TestClient

from ballotbox.main import (
    ALLOWED_METHODS,
    ALLOWED_ORIGINS,
    SECURITY_HEADERS,
    STRICT_TRANSPORT_SECURITY,
    app,
)

client = TestClient(app)

def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_security_headers_present():
    response = client.get("/health")
    for header, value in SECURITY_HEADERS.items():
        assert response.headers.get(header) == value
    assert response.headers.get("Strict-Transport-Security") == STRICT_TRANSPORT_SECURITY


def test_security_headers_on_errors_too():
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.headers.get("X-Frame-Options") == "DENY"


def test_put_is_not_allowed():
    r = client.put("/ballots/anything", json={"title": "x"})
    assert r.status_code == 405
    assert r.headers.get("Allow") == ", ".join(ALLOWED_METHODS)


def test_non_json_body_is_rejected():
    r = client.post("/ballots", content=b"title=Lunch", headers={"content-type": "application/x-www-form-urlencoded"})
    assert r.status_code == 415


def test_cors_preflight_allows_known_origin():
    origin = ALLOWED_ORIGINS[0]
    response = client.options(
        "/health",
        headers={
            "origin": origin,
            "access-control-request-method": "GET",
            "access-control-request-headers": "authorization",
        },
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == origin
    assert response.headers.get("access-control-allow-credentials") == "true"
