from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from upline_ledger.infrastructure.http.middleware import request_logging_middleware


def test_request_logging_middleware_logs_request_and_outcome(caplog) -> None:
    app = FastAPI()
    app.middleware("http")(request_logging_middleware)

    @app.post("/v1/thing")
    async def thing() -> dict[str, bool]:
        return {"ok": True}

    caplog.set_level(logging.INFO, logger="upline_ledger.http")

    client = TestClient(app)
    response = client.post("/v1/thing", params={"q": "1"}, content="z" * 2000)

    assert response.status_code == 200
    assert response.headers["x-request-id"]

    records = [record for record in caplog.records if record.name == "upline_ledger.http"]
    received = next(record for record in records if record.msg == "request_received")
    completed = next(record for record in records if record.msg == "request_completed")

    assert received.data["request_line"] == "POST /v1/thing?q=1"
    assert received.data["body"].startswith("z" * 1024)
    assert received.data["body"].endswith("... (truncated)")
    assert completed.data["status_code"] == 200
    assert completed.data["request_id"] == received.data["request_id"]
    assert completed.levelno == logging.INFO


def test_server_errors_are_logged_at_warning(caplog) -> None:
    app = FastAPI()
    app.middleware("http")(request_logging_middleware)

    @app.get("/broken")
    async def broken() -> None:
        raise HTTPException(status_code=502, detail="upstream")

    caplog.set_level(logging.INFO, logger="upline_ledger.http")

    response = TestClient(app).get("/broken", headers={"x-request-id": "abc"})

    assert response.status_code == 502
    completed = next(record for record in caplog.records if record.msg == "request_completed")
    assert completed.levelno == logging.WARNING
    assert completed.data["request_id"] == "abc"
