"""
Unit tests for the HTTP workbook client.
"""

import json

import httpx
import pytest

from vbagen.core.exceptions import InfrastructureError, ValidationError
from vbagen.infrastructure.http.workbook_client import HttpWorkbookClient
from vbagen.models.enums import ValidationErrorReason, WorkbookOperation


def _client(settings, handler) -> HttpWorkbookClient:
    client = httpx.AsyncClient(
        base_url="http://testserver", transport=httpx.MockTransport(handler)
    )
    return HttpWorkbookClient(settings, client=client)


@pytest.mark.asyncio
async def test_render_returns_workbook_bytes(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"PK-xlsx")

    data = await _client(settings, handler).render(WorkbookOperation.ADD_FORMULA, "SUM(A1:A5)")

    assert data == b"PK-xlsx"
    assert seen == {
        "path": "/api/excel-operations",
        "body": {"operation": "add_formula", "content": "SUM(A1:A5)"},
    }


@pytest.mark.asyncio
async def test_rejected_payload_is_validation_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "error": "Button configuration is incomplete",
                "reason": "missing-field",
                "field": "content.macroName",
            },
        )

    with pytest.raises(ValidationError) as exc_info:
        await _client(settings, handler).render("add_button", {"buttonText": "Go"})

    assert exc_info.value.reason == ValidationErrorReason.MISSING_FIELD
    assert exc_info.value.field == "content.macroName"
    assert exc_info.value.message == "Button configuration is incomplete"


@pytest.mark.asyncio
async def test_unclassified_rejection_is_wrong_type(settings):
    backend = _client(settings, lambda request: httpx.Response(400, text="bad request"))

    with pytest.raises(ValidationError) as exc_info:
        await backend.render("create_vba", "Sub A()\nEnd Sub")

    assert exc_info.value.reason == ValidationErrorReason.WRONG_TYPE


@pytest.mark.asyncio
async def test_server_error_is_infrastructure_error(settings):
    backend = _client(settings, lambda request: httpx.Response(503))

    with pytest.raises(InfrastructureError):
        await backend.render("create_vba", "Sub A()\nEnd Sub")


@pytest.mark.asyncio
async def test_transport_error_is_infrastructure_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(InfrastructureError):
        await _client(settings, handler).render("create_vba", "Sub A()\nEnd Sub")
