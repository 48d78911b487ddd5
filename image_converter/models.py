from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class FormatInfo(BaseModel):
    name: str
    mime_type: str
    extension: str
    supports_alpha: bool
    supports_animation: bool
    lossy: bool


class FormatListResponse(BaseModel):
    formats: List[FormatInfo] = Field(default_factory=list)
    default: str = Field(default="png", description="Target format selected when none is given")
    accepted_extensions: List[str] = Field(default_factory=list)


class ConversionMetadata(BaseModel):
    format: str
    media_type: str
    filename: str
    width: int
    height: int
    size_bytes: int
    loss: List[str] = Field(default_factory=list)


class ShareResponse(BaseModel):
    title: str
    text: str
    url: str = Field(..., description="Download URL of the converted image")
    artifact_id: str
    conversion: ConversionMetadata
