"""
Excel operations endpoint.

Renders an instructional workbook and returns it as an attachment.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, Response

from vbagen.core.exceptions import ValidationError
from vbagen.core.logger import logger
from vbagen.models.generation import WorkbookRequest
from vbagen.services.workbook_service import WORKBOOK_FILENAME, XLSX_MEDIA_TYPE, render_workbook

router = APIRouter()


@router.post("")
async def excel_operation(payload: WorkbookRequest):
    """
    Render a workbook for create_vba, add_formula or add_button.

    Returns 400 with {"error": ...} when the payload is incomplete or invalid.
    """
    try:
        data = render_workbook(payload.operation, payload.content)
    except ValidationError as e:
        logger.info(f"Excel operation rejected: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": e.message, "reason": e.reason.value, "field": e.field},
        )

    return Response(
        content=data,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={WORKBOOK_FILENAME}"},
    )
