"""
HTTP workbook client.

Asks the ``/api/excel-operations`` route of a running vbagen server for an
instructional workbook and returns the xlsx bytes.
"""

from __future__ import annotations

from typing import Any

import httpx

from vbagen.core.config import Settings
from vbagen.core.exceptions import InfrastructureError, ValidationError
from vbagen.core.logger import logger
from vbagen.models.enums import ValidationErrorReason, WorkbookOperation


def _validation_error(response: httpx.Response) -> ValidationError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    try:
        reason = ValidationErrorReason(body.get("reason"))
    except ValueError:
        reason = ValidationErrorReason.WRONG_TYPE
    return ValidationError(
        reason,
        body.get("field") or "payload",
        body.get("error") or "Failed to generate Excel file",
    )


class HttpWorkbookClient:
    """Workbook rendering reached over HTTP."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient(
            base_url=settings.API_BASE_URL,
            timeout=settings.API_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def render(self, operation: WorkbookOperation | str, content: Any) -> bytes:
        """
        Render a workbook remotely.

        Raises:
            ValidationError: The server rejected the operation or content
            InfrastructureError: The server could not be reached or failed
        """
        if isinstance(operation, WorkbookOperation):
            operation = operation.value
        try:
            response = await self._client.post(
                "/api/excel-operations", json={"operation": operation, "content": content}
            )
        except httpx.HTTPError as exc:
            logger.warning(f"Workbook service unreachable: {exc}")
            raise InfrastructureError("Workbook service unreachable") from exc

        if response.status_code in (400, 422):
            raise _validation_error(response)
        if response.status_code != 200:
            raise InfrastructureError(
                f"Workbook service error {response.status_code}",
                details={"status_code": response.status_code},
            )
        return response.content
