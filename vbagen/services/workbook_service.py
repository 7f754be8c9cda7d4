"""
Workbook rendering service.

Renders a one-sheet instructional .xlsx for generated code, a formula, or a
form button. Stateless; validation failures raise ValidationError.
"""

from __future__ import annotations

import re
from io import BytesIO
from typing import Any, Callable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.worksheet.worksheet import Worksheet

from vbagen.core.exceptions import ValidationError
from vbagen.core.logger import logger
from vbagen.models.enums import ValidationErrorReason, WorkbookOperation

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
WORKBOOK_FILENAME = "excel_template.xlsx"
WORKBOOK_CREATOR = "Excel VBA Generator"

_MACRO_NAME_RE = re.compile(r"Sub\s+(\w+)")
_BUTTON_FIELDS = ("buttonText", "buttonName", "macroName")
_BODY_FONT = Font(size=11, color="000000")


def _require_str(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(
            ValidationErrorReason.WRONG_TYPE, field, f"{field} must be a string"
        )
    if not value.strip():
        raise ValidationError(
            ValidationErrorReason.MISSING_FIELD, field, f"{field} is required"
        )
    return value


def parse_operation(operation: Any) -> WorkbookOperation:
    if operation is None or operation == "":
        raise ValidationError(
            ValidationErrorReason.MISSING_FIELD, "operation", "Operation and content are required"
        )
    try:
        return WorkbookOperation(operation)
    except (TypeError, ValueError):
        raise ValidationError(
            ValidationErrorReason.WRONG_TYPE, "operation", f"Unsupported operation: {operation}"
        ) from None


def _write_lines(ws: Worksheet, first_row: int, lines: list[str]) -> None:
    for offset, line in enumerate(lines):
        cell = ws.cell(row=first_row + offset, column=1, value=line)
        cell.font = _BODY_FONT


def _render_vba(ws: Worksheet, content: Any) -> None:
    code = _require_str(content, "content")
    match = _MACRO_NAME_RE.search(code)
    macro_name = match.group(1) if match else "Macro1"

    _write_lines(
        ws,
        3,
        [
            "Instructions for implementing VBA code:",
            "1. Open Visual Basic Editor (Alt + F11)",
            "2. Insert > Module",
            "3. Copy and paste the following code:",
        ],
    )
    ws["A3"].font = Font(bold=True, size=11, color="000000")

    ws["A7"] = code
    ws["A7"].alignment = Alignment(wrap_text=True, vertical="top")
    ws["A8"] = f"4. Run the macro '{macro_name}' with Alt + F8"
    ws["A8"].font = _BODY_FONT

    ws["A9"] = "Important: Save this workbook as a macro-enabled file (.xlsm)"
    ws["A9"].font = Font(bold=True, color="FF0000")

    ws.column_dimensions["A"].width = 100


def _render_formula(ws: Worksheet, content: Any) -> None:
    text = _require_str(content, "content").strip()
    formula = text if text.startswith("=") else f"={text}"
    if len(formula) < 2:
        raise ValidationError(
            ValidationErrorReason.MISSING_FIELD, "content", "Invalid formula: empty expression"
        )

    ws["A3"] = "Formula:"
    ws["A3"].font = Font(bold=True)
    ws["B3"] = formula

    ws["A4"] = "Formula text:"
    ws["A4"].font = Font(bold=True)
    # keep the reference copy as plain text, not a second formula
    ws["B4"] = formula
    ws["B4"].data_type = "s"

    for column in ("A", "B"):
        ws.column_dimensions[column].width = 30


def _render_button(ws: Worksheet, content: Any) -> None:
    if not isinstance(content, dict):
        raise ValidationError(
            ValidationErrorReason.WRONG_TYPE, "content", "Button configuration must be an object"
        )
    config = {}
    for name in _BUTTON_FIELDS:
        value = content.get(name)
        if value is None:
            raise ValidationError(
                ValidationErrorReason.MISSING_FIELD,
                f"content.{name}",
                "Button configuration is incomplete",
            )
        config[name] = _require_str(value, f"content.{name}")

    _write_lines(
        ws,
        3,
        [
            "Button Configuration:",
            "1. Enable Developer tab in Excel:",
            '   - File > Options > Customize Ribbon > Check "Developer"',
            '2. On Developer tab, click "Insert" and choose "Button (Form Control)"',
            "3. Draw button on worksheet",
            "4. Configure button with these settings:",
            f"   • Button Text: {config['buttonText']}",
            f"   • Button Name: {config['buttonName']}",
            f"   • Macro Name: {config['macroName']}",
        ],
    )
    ws["A3"].font = Font(bold=True, size=11, color="000000")
    ws.column_dimensions["A"].width = 80


_RENDERERS: dict[WorkbookOperation, Callable[[Worksheet, Any], None]] = {
    WorkbookOperation.CREATE_VBA: _render_vba,
    WorkbookOperation.ADD_FORMULA: _render_formula,
    WorkbookOperation.ADD_BUTTON: _render_button,
}


def render_workbook(operation: Any, content: Any) -> bytes:
    """
    Render the instructional workbook for an operation.

    Args:
        operation: "create_vba", "add_formula" or "add_button"
        content: VBA code, formula text, or a button configuration object
            with buttonText, buttonName and macroName

    Returns:
        The .xlsx file contents

    Raises:
        ValidationError: MISSING_FIELD for absent operation/content or an
            incomplete button configuration, WRONG_TYPE for an unknown
            operation or a payload of the wrong shape
    """
    op = parse_operation(operation)
    if content is None or content == "" or content == {}:
        raise ValidationError(
            ValidationErrorReason.MISSING_FIELD, "content", "Operation and content are required"
        )

    wb = Workbook()
    wb.properties.creator = WORKBOOK_CREATOR
    wb.properties.lastModifiedBy = WORKBOOK_CREATOR

    ws = wb.active
    ws.title = "Sheet1"
    ws.sheet_properties.tabColor = "4167B8"

    ws["A1"] = WORKBOOK_CREATOR
    ws["A1"].font = Font(bold=True, size=14, color="000000")

    _RENDERERS[op](ws, content)

    buffer = BytesIO()
    wb.save(buffer)
    logger.debug(f"Rendered {op.value} workbook ({buffer.tell()} bytes)")
    return buffer.getvalue()
