from .health import HealthResponse, VersionResponse
from .verification import (
    CheckResultSchema,
    ElaSchema,
    VerificationVerdictSchema,
    VerifyResponse,
)

__all__ = [
    # Health
    "HealthResponse",
    "VersionResponse",
    # Verification
    "CheckResultSchema",
    "ElaSchema",
    "VerificationVerdictSchema",
    "VerifyResponse",
]
