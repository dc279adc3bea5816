from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConversionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_name: str = Field(alias="originalName")
    name: str
    url: str
    dpi: int


class ConvertResponse(BaseModel):
    message: str
    files: List[ConversionResult]


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
