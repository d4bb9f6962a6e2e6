"""
Check result records shared by every verification step.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


CHECK_SIZE = "size"
CHECK_FORMAT = "format"
CHECK_DUPLICATE = "duplicate"
CHECK_ELA = "ela"
CHECK_EXIF = "exif"
CHECK_GPS_DISTANCE = "gps-distance"

# Fixed evaluation order
CHECK_ORDER = (
    CHECK_SIZE,
    CHECK_FORMAT,
    CHECK_DUPLICATE,
    CHECK_ELA,
    CHECK_EXIF,
    CHECK_GPS_DISTANCE,
)

# Reason codes reported when a hard check rejects an image
REJECTION_REASONS = {
    CHECK_SIZE: "too-large",
    CHECK_FORMAT: "bad-format",
    CHECK_DUPLICATE: "duplicate",
    CHECK_ELA: "manipulation",
    CHECK_GPS_DISTANCE: "gps-mismatch",
}


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one named check for one image."""
    name: str
    ok: bool
    info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "ok": self.ok, "info": dict(self.info)}
