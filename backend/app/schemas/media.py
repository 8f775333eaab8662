"""
Pydantic models for media inspection results.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProbeStream(BaseModel):
    """A single stream descriptor as reported by ffprobe."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    width: int = Field(0, description="Frame width in pixels (0 for non-visual streams).")
    height: int = Field(0, description="Frame height in pixels (0 for non-visual streams).")
    codec_name: Optional[str] = None
    duration: Optional[str] = None


class ProbeResult(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    streams: List[ProbeStream] = Field(default_factory=list)


class ShapeCategory(str, Enum):
    WIDESCREEN = "widescreen"
    TALL = "tall"
    SQUARE = "square"
    STANDARD = "standard"
    OTHER = "other"
