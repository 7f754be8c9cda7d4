"""
Generation and workbook rendering models.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class GenerationResult(BaseModel):
    """Result of a VBA generation request."""

    generated_code: str = Field(..., description="VBA source code")
    explanation: str = Field(..., description="How to use the code")
    structured: bool = Field(
        True, description="False when the reply was not the requested JSON shape"
    )


class ButtonConfig(BaseModel):
    """Form-control button set-up for the add_button workbook."""

    buttonText: str = Field(..., min_length=1)
    buttonName: str = Field(..., min_length=1)
    macroName: str = Field(..., min_length=1)


class WorkbookRequest(BaseModel):
    """Payload accepted by the excel-operations endpoint."""

    operation: Optional[str] = None
    content: Optional[Any] = None
