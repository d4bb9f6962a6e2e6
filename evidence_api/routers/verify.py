"""
Evidence Verification API Router
================================
Accepts a batch of photos plus an optional reported location and returns one
verdict per photo:
- size / format validation
- near-duplicate detection against previously accepted photos
- Error Level Analysis tamper score
- EXIF GPS vs. reported location distance
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from evidence_engine import ImageSubmission, ImageVerifier, StoreIOError

from ..config import settings
from ..dependencies import get_verifier, require_api_key
from ..schemas.verification import VerifyResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Verification"])


@router.post(
    "/verify",
    response_model=VerifyResponse,
    response_model_exclude_none=True,
)
async def verify_images(
    photos: Optional[List[UploadFile]] = File(None, description="Images to verify."),
    reported_location: Optional[str] = Form(
        None,
        alias="reportedLocation",
        description="Free text address or 'Lat: x, Lon: y' where the photos were taken.",
    ),
    verifier: ImageVerifier = Depends(get_verifier),
    _api_key: Optional[str] = Depends(require_api_key),
) -> VerifyResponse:
    """
    Verify uploaded evidence photos.

    Per-photo problems (unreadable file, duplicate, tampering, location
    mismatch) are reported in the verdicts. Only a fingerprint store failure
    fails the whole request.
    """
    files = photos or []
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files")
    if len(files) > settings.max_files_per_request:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.max_files_per_request} files per request",
        )

    submissions = []
    for upload in files:
        submissions.append(
            ImageSubmission(
                data=await upload.read(),
                filename=upload.filename,
                content_type=upload.content_type,
            )
        )

    try:
        report = await run_in_threadpool(verifier.verify_batch, submissions, reported_location)
    except StoreIOError as e:
        logger.error(f"Verification aborted, fingerprint store unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Fingerprint store unavailable",
        )

    return VerifyResponse.model_validate(report.to_dict())
