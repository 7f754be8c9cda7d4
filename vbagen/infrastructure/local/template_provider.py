"""
Offline template provider for local development.

Answers with canned VBA solutions picked by keyword, in the same JSON shape
the Gemini prompt asks for. No network access and no real API key needed.
"""

from __future__ import annotations

import json
from typing import Optional, Sequence

from vbagen.interfaces.llm_provider import ILLMProvider
from vbagen.models.project import Message

_SORT_CODE = """Sub SortData()
    ' Sort column A (with header row) in ascending order
    Dim ws As Worksheet
    Set ws = ActiveSheet

    Dim sortRange As Range
    Set sortRange = ws.Range("A1:A" & ws.Cells(ws.Rows.Count, "A").End(xlUp).Row)

    sortRange.Sort Key1:=sortRange, Order1:=xlAscending, Header:=xlYes

    MsgBox "Data has been sorted successfully!", vbInformation
End Sub"""

_AVERAGE_CODE = """Function CalculateAverage() As Double
    ' Average of cells B2:B10
    CalculateAverage = Application.WorksheetFunction.Average(Range("B2:B10"))
End Function

Sub ShowAverageResult()
    MsgBox "The average of B2:B10 is: " & CalculateAverage(), vbInformation, "Average Result"
End Sub"""

_FORM_CODE = """' Insert a UserForm named frmCustomerData with
' TextBoxes txtName, txtEmail, txtPhone and CommandButtons cmdSave, cmdCancel

Private Sub cmdSave_Click()
    If txtName.Text = "" Then
        MsgBox "Please enter a customer name.", vbExclamation
        txtName.SetFocus
        Exit Sub
    End If

    Dim ws As Worksheet
    Dim nextRow As Long
    Set ws = ThisWorkbook.Sheets("CustomerData")
    nextRow = ws.Cells(ws.Rows.Count, "A").End(xlUp).Row + 1

    ws.Cells(nextRow, "A").Value = txtName.Text
    ws.Cells(nextRow, "B").Value = txtEmail.Text
    ws.Cells(nextRow, "C").Value = txtPhone.Text

    MsgBox "Customer data saved successfully!", vbInformation
    txtName.Text = ""
    txtEmail.Text = ""
    txtPhone.Text = ""
End Sub

Private Sub cmdCancel_Click()
    Unload Me
End Sub

Sub ShowCustomerForm()
    frmCustomerData.Show
End Sub"""

_HELLO_CODE = """Sub HelloWorld()
    MsgBox "Hello, World!", vbInformation, "Excel VBA"
End Sub"""

# (keywords, code, explanation); first match wins
TEMPLATES: list[tuple[tuple[str, ...], str, str]] = [
    (
        ("sort", "order"),
        _SORT_CODE,
        "This macro sorts the data in column A in ascending order and assumes a "
        "header row. Change the range or Order1:=xlDescending to adapt it.",
    ),
    (
        ("average", "mean", "calculate"),
        _AVERAGE_CODE,
        "CalculateAverage returns the average of B2:B10 and can be used in a cell "
        "formula; run ShowAverageResult to see the value in a message box.",
    ),
    (
        ("form", "input", "customer"),
        _FORM_CODE,
        "A customer data entry form: create the UserForm and controls named in the "
        "comments, paste the code, and run ShowCustomerForm. Rows are appended to "
        "the CustomerData sheet.",
    ),
]

FALLBACK = (
    _HELLO_CODE,
    "Here is a simple 'Hello World' macro as a starting point. Tell me more about "
    "the Excel task you want to automate (data manipulation, forms, reports...).",
)


def pick_template(request: str) -> tuple[str, str]:
    """Return (code, explanation) for the first template whose keyword occurs in request."""
    text = request.lower()
    for keywords, code, explanation in TEMPLATES:
        if any(keyword in text for keyword in keywords):
            return code, explanation
    return FALLBACK


class TemplateProvider(ILLMProvider):
    """Keyword-matched canned answers."""

    def get_model_name(self) -> str:
        return "Offline templates"

    async def generate(
        self,
        api_key: str,
        history: Sequence[Message],
        prompt: str,
        system_instruction: Optional[str] = None,
    ) -> str:
        code, explanation = pick_template(prompt)
        return json.dumps({"vbaCode": code, "explanation": explanation})
