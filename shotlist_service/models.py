"""
Pydantic models for the shot list HTTP API.

These models define the structure for API requests and responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Singular spellings accepted for the per-shot fields
FIELD_ALIASES = {
    "image": "images",
    "scene": "scenes",
    "size": "sizes",
    "name": "names",
}

ShotField = Optional[Union[str, List[Optional[str]]]]


def canonicalize_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map alias keys onto canonical field names.

    When both spellings arrive from the same source, the canonical one wins.
    """
    result: Dict[str, Any] = {}
    for key, value in params.items():
        canonical = FIELD_ALIASES.get(key, key)
        if canonical != key and canonical in params:
            continue
        result[canonical] = value
    return result


class GenerateRequest(BaseModel):
    """Shot list request, merged from the query string and the JSON body."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, description="Cover page title")
    description: Optional[str] = Field(None, description="Cover page description")
    images: ShotField = Field(None, description="Image URLs (list or '|||'-joined string)")
    scenes: ShotField = Field(None, description="Scene label per shot")
    sizes: ShotField = Field(None, description="Framing label per shot")
    descriptions: ShotField = Field(None, description="Description per shot")
    names: ShotField = Field(None, description="Optional name per shot")

    def shot_fields(self) -> Dict[str, Any]:
        """Raw per-shot fields for the normalizer."""
        return {
            "images": self.images,
            "scenes": self.scenes,
            "sizes": self.sizes,
            "descriptions": self.descriptions,
            "names": self.names,
        }


class GenerateResponse(BaseModel):
    """Reference to a finished shot list PDF."""

    filename: str
    pdfUrl: str
    pageCount: int
    shotCount: int
    missingImages: int = Field(0, description="Cells whose image could not be fetched")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    timestamp: datetime
    version: str
    layout_mode: str
    output_dir_writable: bool
    header_font: str
