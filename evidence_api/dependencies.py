import threading
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from evidence_engine import ImageVerifier

from .config import settings

api_key_header = APIKeyHeader(name='X-API-Key', auto_error=False)

_verifier: Optional[ImageVerifier] = None
_verifier_lock = threading.Lock()


def get_verifier() -> ImageVerifier:
    """Return the process-wide verifier, creating it on first use.

    Building lazily keeps import-time side effects minimal, so tests that
    override this dependency never touch the configured fingerprint store.
    """
    global _verifier
    if _verifier is None:
        with _verifier_lock:
            if _verifier is None:
                _verifier = ImageVerifier()
    return _verifier


async def require_api_key(api_key: Optional[str] = Depends(api_key_header)) -> Optional[str]:
    """Simple API key guard for non-health routes."""
    if settings.api_keys:
        if api_key is None or api_key not in settings.api_keys:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')
    return api_key
