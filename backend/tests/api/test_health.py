"""Health & Error Handlers — tests for health checks, the error envelope and startup posture.

Tests cover:
    - Liveness always 200
    - Readiness 503 without a database, 200 with database and cipher
    - VetcepiError / validation / unhandled errors map to the JSON envelope
    - Production startup without ENCRYPTION_KEY fails in lifespan
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

import vetcepi.infrastructure.database as db_module
import vetcepi.main as main_module
from vetcepi.api.error_handlers import register_error_handlers
from vetcepi.core.errors import (
    ConfigurationError, DecryptionFailure, DuplicateBarcodeError, EncryptionFailure,
    ResourceNotFoundError,
)
from vetcepi.main import app


@pytest.fixture
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


async def test_liveness(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_readiness_without_database(client, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "not_ready"
    assert body["checks"] == {"database": "unavailable", "cipher": "healthy"}


async def test_readiness_with_database(client, monkeypatch, db_manager):
    monkeypatch.setattr(db_module, "db_manager", db_manager)

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "checks": {"database": "healthy", "cipher": "healthy"},
    }


# ─── error envelope ──────────────────────────────────────────────

class _Payload(BaseModel):
    name: str


def _error_app() -> FastAPI:
    api = FastAPI()
    register_error_handlers(api)

    @api.get("/duplicate")
    async def duplicate():
        raise DuplicateBarcodeError("5012345678900", "med-1")

    @api.get("/missing")
    async def missing():
        raise ResourceNotFoundError("Pet", "pet-9")

    @api.get("/decrypt")
    async def undecryptable():
        raise DecryptionFailure("authentication failed")

    @api.get("/encrypt")
    async def unencryptable():
        raise EncryptionFailure("ValueError")

    @api.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    @api.post("/validate")
    async def validate(payload: _Payload):
        return payload

    return api


@pytest.fixture
async def error_client():
    async with AsyncClient(
        transport=ASGITransport(app=_error_app(), raise_app_exceptions=False),
        base_url="http://test",
    ) as c:
        yield c


async def test_duplicate_barcode_carries_existing_id(error_client):
    response = await error_client.get("/duplicate")
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "DUPLICATE_BARCODE"
    assert error["existing_id"] == "med-1"
    assert error["barcode"] == "5012345678900"


async def test_domain_error_envelope(error_client):
    response = await error_client.get("/missing")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.parametrize("path,code", [
    ("/decrypt", "DECRYPTION_FAILURE"),
    ("/encrypt", "ENCRYPTION_FAILURE"),
])
async def test_cipher_error_hides_reason(error_client, path, code):
    response = await error_client.get(path)
    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == code
    assert error["message"] == "Medical record could not be processed"
    assert "authentication" not in response.text
    assert "ValueError" not in response.text


async def test_unhandled_error_does_not_leak(error_client):
    response = await error_client.get("/boom")
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "secret" not in response.text


async def test_validation_error_omits_input(error_client):
    response = await error_client.post("/validate", json={"name": 12, "history": "FIV+"})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["field"] == "body.name"
    assert "FIV" not in response.text


# ─── startup posture ─────────────────────────────────────────────

async def test_production_without_key_refuses_to_start(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
    monkeypatch.setattr(main_module, "setup_logging", lambda *args: None)
    init_db = []
    monkeypatch.setattr(main_module, "init_db", lambda *a, **kw: init_db.append(a))

    with pytest.raises(ConfigurationError):
        async with main_module.lifespan(FastAPI()):
            pass
    assert init_db == []
