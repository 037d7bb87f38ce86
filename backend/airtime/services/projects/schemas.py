from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ValidateUploadInput(BaseModel):
    fileSize: int
    duration: Optional[float] = None
    mimeType: Optional[str] = None


class CreateProjectInput(BaseModel):
    fileUrl: str = ""
    fileName: str = ""
    fileSize: Optional[int] = None
    mimeType: str = ""
    fileDuration: Optional[float] = None


class RenameProjectInput(BaseModel):
    displayName: str = ""
