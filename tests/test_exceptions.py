"""
Unit tests for the domain exceptions and the JSON error envelope produced by
the registered handlers.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field

from sahem_invest.core.exceptions import (
    AppException,
    BusinessRuleViolation,
    ConflictException,
    DistributionCalculationError,
    InvalidCommissionConfiguration,
    NotFoundException,
    add_exception_handlers,
)
from sahem_invest.core.resilience import CircuitBreakerError


class TestDomainExceptions:
    def test_not_found_message(self):
        exc = NotFoundException("Distribution request", "abc-123")
        assert exc.status_code == 404
        assert exc.message == "Distribution request with id 'abc-123' not found"

    def test_conflict_is_409(self):
        assert ConflictException("already processed").status_code == 409

    def test_business_rule_keeps_details(self):
        exc = BusinessRuleViolation("amounts do not add up", details=["profit off by 20"])
        assert exc.status_code == 422
        assert exc.details == ["profit off by 20"]
        assert str(exc) == "amounts do not add up"

    def test_calculation_errors_are_business_rules(self):
        exc = InvalidCommissionConfiguration("percentages exceed 100%")
        assert isinstance(exc, DistributionCalculationError)
        assert isinstance(exc, BusinessRuleViolation)
        assert isinstance(exc, AppException)
        assert exc.status_code == 422


def _make_app() -> FastAPI:
    # debug=False keeps Starlette from re-raising before the catch-all handler runs.
    app = FastAPI(debug=False)
    add_exception_handlers(app)

    class Payload(BaseModel):
        total_amount: float = Field(..., gt=0)

    @app.get("/commission")
    async def commission():
        raise InvalidCommissionConfiguration("Commission percentages add up to 110%")

    @app.get("/custom")
    async def custom():
        raise BusinessRuleViolation("Custom amounts do not match", details=["capital off"])

    @app.get("/breaker")
    async def breaker():
        raise CircuitBreakerError(name="database", retry_after=10.0)

    @app.get("/crash")
    async def crash():
        raise RuntimeError("unexpected")

    @app.post("/validate")
    async def validate(body: Payload):
        return {"ok": True}

    return app


async def _get(method: str, url: str, **kwargs):
    transport = ASGITransport(app=_make_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, url, **kwargs)


class TestExceptionHandlers:
    @pytest.mark.asyncio
    async def test_app_exception_envelope(self):
        resp = await _get("GET", "/commission")

        assert resp.status_code == 422
        assert resp.json() == {"error": True, "message": "Commission percentages add up to 110%"}

    @pytest.mark.asyncio
    async def test_details_are_included(self):
        resp = await _get("GET", "/custom")

        assert resp.json()["details"] == ["capital off"]

    @pytest.mark.asyncio
    async def test_open_circuit_is_503_with_retry_after(self):
        resp = await _get("GET", "/breaker")

        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "11"
        assert "circuit is open" in resp.json()["message"]

    @pytest.mark.asyncio
    async def test_validation_lists_fields(self):
        resp = await _get("POST", "/validate", json={"total_amount": -1})

        assert resp.status_code == 422
        details = resp.json()["details"]
        assert details[0]["field"] == "body -> total_amount"

    @pytest.mark.asyncio
    async def test_unknown_route_is_404_envelope(self):
        resp = await _get("GET", "/nope")

        assert resp.status_code == 404
        assert resp.json()["error"] is True

    @pytest.mark.asyncio
    async def test_unhandled_error_is_500(self):
        resp = await _get("GET", "/crash")

        assert resp.status_code == 500
        assert "Internal Server Error" in resp.json()["message"]
