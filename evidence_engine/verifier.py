"""
Verdict aggregation for uploaded evidence images.

Every image goes through the same fixed sequence of checks:

    size -> format -> duplicate -> ela -> exif -> gps-distance

All checks run even after one fails, so the verdict carries a complete audit
trail. The first failing *hard* check names the rejection reason. A missing
GPS tag next to a reported location is recorded but does not reject.

Fingerprints of accepted images are appended to the store once per batch,
after every image has been checked against the history read at batch start.
"""
from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .checks import (
    CHECK_DUPLICATE,
    CHECK_ELA,
    CHECK_EXIF,
    CHECK_GPS_DISTANCE,
    REJECTION_REASONS,
    CheckResult,
)
from .config import EngineSettings, settings
from .decoder import DecodedImage, check_format, check_size
from .ela import ElaResult, check_ela, compute_ela
from .exif import ExifReader, PillowExifReader
from .fingerprint import compute_fingerprint, find_near_duplicates
from .geo import GeoPoint, Geocoder, build_geocoder, haversine_m, resolve_location
from .store import FingerprintRepository, build_repository

logger = logging.getLogger(__name__)

SKIPPED_UNDECODABLE = {"skipped": "undecodable"}


class VerdictState(str, Enum):
    PENDING = "pending"
    CHECKING = "checking"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class ImageSubmission:
    """One uploaded image of a verification batch."""
    data: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None
    batch_id: Optional[str] = None


@dataclass(frozen=True)
class VerificationVerdict:
    ok: bool
    reason: str
    checks: Tuple[CheckResult, ...]
    info: Dict[str, Any] = field(default_factory=dict)
    hash: Optional[str] = None
    ela: Optional[ElaResult] = None
    filename: Optional[str] = None

    @property
    def state(self) -> VerdictState:
        return VerdictState.ACCEPTED if self.ok else VerdictState.REJECTED

    def check(self, name: str) -> Optional[CheckResult]:
        for result in self.checks:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ok": self.ok,
            "reason": self.reason,
            "checks": [c.to_dict() for c in self.checks],
            "info": dict(self.info),
        }
        if self.filename is not None:
            out["filename"] = self.filename
        if self.hash is not None:
            out["hash"] = self.hash
        if self.ela is not None:
            out["ela"] = self.ela.to_dict()
        return out


@dataclass
class BatchReport:
    batch_id: str
    results: List[VerificationVerdict]
    reported_location: Optional[GeoPoint] = None

    @property
    def accepted(self) -> List[VerificationVerdict]:
        return [r for r in self.results if r.ok]

    def to_dict(self) -> Dict[str, Any]:
        return {"results": [r.to_dict() for r in self.results]}


class VerdictBuilder:
    """Collects check results for one image in evaluation order."""

    def __init__(self, filename: Optional[str] = None):
        self.filename = filename
        self.state = VerdictState.PENDING
        self._checks: List[CheckResult] = []
        self._reason: Optional[str] = None
        self._info: Dict[str, Any] = {}
        self.hash: Optional[str] = None
        self.ela: Optional[ElaResult] = None

    def start(self) -> "VerdictBuilder":
        self.state = VerdictState.CHECKING
        return self

    def record(self, result: CheckResult, *, hard: bool = True, **info: Any) -> None:
        """
        Append a check result.

        A failing result rejects the image only when ``hard`` is set; the
        first hard failure fixes the reason. ``info`` is merged into the
        verdict-level info when the result rejects.
        """
        self._checks.append(result)
        if result.ok or not hard:
            return
        if self._reason is None:
            self._reason = REJECTION_REASONS.get(result.name, "failed")
        self._info.update(info)

    def build(self) -> VerificationVerdict:
        ok = self._reason is None
        self.state = VerdictState.ACCEPTED if ok else VerdictState.REJECTED
        return VerificationVerdict(
            ok=ok,
            reason="ok" if ok else self._reason,
            checks=tuple(self._checks),
            info=self._info,
            hash=self.hash,
            ela=self.ela,
            filename=self.filename,
        )


class ImageVerifier:
    """
    Runs the verification checks over batches of images.

    Usage:
        verifier = ImageVerifier(repository=InMemoryFingerprintRepository())
        report = verifier.verify_batch([ImageSubmission(data)], "Lat: 12.97, Lon: 77.59")
        for verdict in report.results:
            print(verdict.ok, verdict.reason)
    """

    def __init__(
        self,
        repository: Optional[FingerprintRepository] = None,
        *,
        geocoder: Optional[Geocoder] = None,
        exif_reader: Optional[ExifReader] = None,
        config: Optional[EngineSettings] = None,
    ):
        self.config = config or settings
        self.repository = repository if repository is not None else build_repository(self.config)
        self.geocoder = geocoder if geocoder is not None else build_geocoder(self.config)
        self.exif_reader = exif_reader if exif_reader is not None else PillowExifReader()

    def verify_batch(
        self,
        submissions: Sequence[ImageSubmission],
        reported_location: Optional[str] = None,
        *,
        batch_id: Optional[str] = None,
    ) -> BatchReport:
        """
        Verify a batch of images and persist fingerprints of the accepted ones.

        Raises:
            StoreIOError: if the fingerprint history cannot be read or written.
        """
        batch_id = batch_id or uuid.uuid4().hex
        for submission in submissions:
            if submission.batch_id is None:
                submission.batch_id = batch_id
        logger.info(f"Verifying batch {batch_id}: {len(submissions)} image(s)")

        history = self.repository.read_all()
        reported = resolve_location(reported_location, self.geocoder)
        if reported_location and reported is None:
            logger.info(f"Batch {batch_id}: reported location could not be resolved")

        workers = min(self.config.verify_max_workers, max(len(submissions), 1))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(lambda s: self.verify_image(s, history, reported), submissions))
        else:
            results = [self.verify_image(s, history, reported) for s in submissions]

        accepted = [r.hash for r in results if r.ok and r.hash]
        self.repository.append_bounded(accepted)

        logger.info(
            f"Batch {batch_id} complete: {len(accepted)} accepted, "
            f"{len(results) - len(accepted)} rejected"
        )
        return BatchReport(batch_id=batch_id, results=results, reported_location=reported)

    def verify_image(
        self,
        submission: ImageSubmission,
        history: Sequence[str],
        reported: Optional[GeoPoint] = None,
    ) -> VerificationVerdict:
        """Run every check for one image against a fixed history snapshot."""
        builder = VerdictBuilder(submission.filename).start()
        data = submission.data
        max_bytes = self.config.verify_max_file_size

        builder.record(check_size(data, max_bytes))
        format_result, decoded = check_format(data, max_bytes)
        if submission.content_type:
            format_result = CheckResult(
                format_result.name,
                format_result.ok,
                {**format_result.info, "declaredType": submission.content_type},
            )
        builder.record(format_result)

        if decoded is None:
            for name in (CHECK_DUPLICATE, CHECK_ELA, CHECK_EXIF):
                builder.record(CheckResult(name, False, dict(SKIPPED_UNDECODABLE)), hard=False)
        else:
            self._check_duplicate(builder, decoded, history)
            self._check_ela(builder, decoded)
            self._check_location(builder, data, reported)

        verdict = builder.build()
        if not verdict.ok:
            logger.info(
                f"Batch {submission.batch_id}: rejected "
                f"{submission.filename or '<unnamed>'}: {verdict.reason}"
            )
        return verdict

    def _check_duplicate(
        self, builder: VerdictBuilder, decoded: DecodedImage, history: Sequence[str]
    ) -> None:
        try:
            fingerprint = compute_fingerprint(decoded.image)
        except (OSError, ValueError) as e:
            # A hashing failure is a warning, not evidence of a duplicate
            logger.warning(f"Fingerprint failed: {e}")
            builder.record(CheckResult(CHECK_DUPLICATE, False, {"error": str(e)}), hard=False)
            return
        builder.hash = fingerprint
        threshold = self.config.verify_hamming_threshold
        matches = find_near_duplicates(fingerprint, history, threshold)
        info: Dict[str, Any] = {"duplicate": bool(matches), "threshold": threshold}
        if matches:
            info["distance"] = matches[0][1]
        builder.record(CheckResult(CHECK_DUPLICATE, not matches, info))

    def _check_ela(self, builder: VerdictBuilder, decoded: DecodedImage) -> None:
        try:
            result = compute_ela(decoded.image, quality=self.config.verify_ela_quality)
        except (OSError, ValueError) as e:
            logger.warning(f"ELA failed: {e}")
            builder.record(CheckResult(CHECK_ELA, False, {"error": str(e)}), hard=False)
            return
        builder.ela = result
        builder.record(check_ela(result, self.config.verify_ela_threshold), ela=result.to_dict())

    def _check_location(
        self, builder: VerdictBuilder, data: bytes, reported: Optional[GeoPoint]
    ) -> None:
        try:
            gps = self.exif_reader.read_gps(data)
        except Exception as e:
            logger.warning(f"EXIF read failed: {e}")
            builder.record(CheckResult(CHECK_EXIF, False, {"error": str(e)}), hard=False)
            return
        builder.record(
            CheckResult(CHECK_EXIF, gps is not None, {"gps": gps.to_dict() if gps else None}),
            hard=False,
        )
        if reported is None:
            return
        if gps is None:
            builder.record(
                CheckResult(CHECK_GPS_DISTANCE, False, {"note": "no-gps-in-image"}),
                hard=False,
            )
            return
        threshold = self.config.verify_gps_threshold_m
        distance = haversine_m(gps, reported)
        builder.record(
            CheckResult(
                CHECK_GPS_DISTANCE,
                distance <= threshold,
                {"distanceMeters": distance, "threshold": threshold},
            ),
            distanceMeters=distance,
        )
