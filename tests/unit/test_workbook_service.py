"""
Unit tests for workbook rendering.
"""

from io import BytesIO

import pytest
from openpyxl import load_workbook

from vbagen.core.exceptions import ValidationError
from vbagen.models.enums import ValidationErrorReason
from vbagen.services.workbook_service import render_workbook

VBA_CODE = "Sub SortData()\n    Range(\"A1:A10\").Sort Key1:=Range(\"A1\")\nEnd Sub"


def _sheet(data: bytes):
    workbook = load_workbook(BytesIO(data))
    return workbook, workbook.active


class TestRenderWorkbook:
    """Tests for successful rendering."""

    def test_create_vba(self):
        workbook, ws = _sheet(render_workbook("create_vba", VBA_CODE))

        assert ws.title == "Sheet1"
        assert ws["A1"].value == "Excel VBA Generator"
        assert ws["A1"].font.bold
        assert ws["A3"].value == "Instructions for implementing VBA code:"
        assert ws["A7"].value == VBA_CODE
        assert "SortData" in ws["A8"].value
        assert ".xlsm" in ws["A9"].value
        assert workbook.properties.creator == "Excel VBA Generator"

    def test_create_vba_without_sub_uses_default_macro_name(self):
        _, ws = _sheet(render_workbook("create_vba", "Function F()\nEnd Function"))

        assert "Macro1" in ws["A8"].value

    def test_add_formula(self):
        _, ws = _sheet(render_workbook("add_formula", "SUM(A1:A3)"))

        assert ws["A3"].value == "Formula:"
        assert ws["B3"].value == "=SUM(A1:A3)"
        assert ws["A4"].value == "Formula text:"

    def test_add_button(self):
        content = {"buttonText": "Sort now", "buttonName": "btnSort", "macroName": "SortData"}

        _, ws = _sheet(render_workbook("add_button", content))

        assert ws["A3"].value == "Button Configuration:"
        values = [ws.cell(row=row, column=1).value for row in range(3, 12)]
        assert any("Sort now" in v for v in values)
        assert any("btnSort" in v for v in values)
        assert any("SortData" in v for v in values)


class TestRenderWorkbookValidation:
    """Tests for rejected payloads."""

    @pytest.mark.parametrize("operation", [None, ""])
    def test_missing_operation(self, operation):
        with pytest.raises(ValidationError) as exc_info:
            render_workbook(operation, VBA_CODE)

        assert exc_info.value.reason == ValidationErrorReason.MISSING_FIELD
        assert exc_info.value.field == "operation"

    @pytest.mark.parametrize("content", [None, "", {}])
    def test_missing_content(self, content):
        with pytest.raises(ValidationError) as exc_info:
            render_workbook("create_vba", content)

        assert exc_info.value.reason == ValidationErrorReason.MISSING_FIELD
        assert exc_info.value.field == "content"

    def test_unknown_operation(self):
        with pytest.raises(ValidationError) as exc_info:
            render_workbook("delete_sheet", VBA_CODE)

        assert exc_info.value.reason == ValidationErrorReason.WRONG_TYPE
        assert "Unsupported operation" in exc_info.value.message

    def test_code_must_be_text(self):
        with pytest.raises(ValidationError) as exc_info:
            render_workbook("create_vba", {"code": VBA_CODE})

        assert exc_info.value.reason == ValidationErrorReason.WRONG_TYPE

    def test_button_config_must_be_object(self):
        with pytest.raises(ValidationError) as exc_info:
            render_workbook("add_button", "Sort now")

        assert exc_info.value.reason == ValidationErrorReason.WRONG_TYPE

    def test_incomplete_button_config(self):
        with pytest.raises(ValidationError) as exc_info:
            render_workbook("add_button", {"buttonText": "Sort now", "buttonName": "btnSort"})

        assert exc_info.value.reason == ValidationErrorReason.MISSING_FIELD
        assert exc_info.value.field == "content.macroName"
        assert exc_info.value.message == "Button configuration is incomplete"

    def test_button_field_wrong_type(self):
        content = {"buttonText": "Sort now", "buttonName": 7, "macroName": "SortData"}

        with pytest.raises(ValidationError) as exc_info:
            render_workbook("add_button", content)

        assert exc_info.value.reason == ValidationErrorReason.WRONG_TYPE
        assert exc_info.value.field == "content.buttonName"
