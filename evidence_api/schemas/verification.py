from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CheckResultSchema(BaseModel):
    name: str = Field(..., description="Check name: size, format, duplicate, ela, exif or gps-distance.")
    ok: bool
    info: Dict[str, Any] = Field(default_factory=dict)


class ElaSchema(BaseModel):
    avgDiff: float = Field(..., ge=0, le=255, description="Mean re-encode divergence (0-255).")


class VerificationVerdictSchema(BaseModel):
    ok: bool
    reason: str = Field(..., description="'ok' or the code of the first failing check.")
    checks: List[CheckResultSchema]
    info: Dict[str, Any] = Field(default_factory=dict)
    filename: Optional[str] = None
    hash: Optional[str] = Field(
        None,
        min_length=64,
        max_length=64,
        description="64-character '0'/'1' perceptual fingerprint.",
    )
    ela: Optional[ElaSchema] = None


class VerifyResponse(BaseModel):
    results: List[VerificationVerdictSchema]
