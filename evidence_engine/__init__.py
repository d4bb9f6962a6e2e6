"""
Evidence Image Verification Engine
==================================

Checks citizen-submitted photos before they are attached to a complaint.

Modules:
- decoder: upload size/format validation and RGB decoding
- fingerprint: 64-bit luminance fingerprints and Hamming matching
- store: bounded history of accepted fingerprints
- ela: Error Level Analysis tamper score
- exif / geo: embedded GPS vs. reported location
- verifier: per-image verdicts for a batch of uploads
"""

from .checks import CHECK_ORDER, REJECTION_REASONS, CheckResult
from .config import EngineSettings, settings as engine_settings
from .errors import DecodeError, EvidenceEngineError, GeocodeError, StoreIOError

from .decoder import DecodedImage, check_format, check_size, decode_image

# Fingerprinting and duplicate matching
from .fingerprint import (
    DEFAULT_HAMMING_THRESHOLD,
    FINGERPRINT_BITS,
    compute_fingerprint,
    find_near_duplicates,
    hamming_distance,
    is_duplicate,
)

# Storage
from .store import (
    FingerprintRepository,
    InMemoryFingerprintRepository,
    JsonFileFingerprintRepository,
    SqlFingerprintRepository,
    build_repository,
)

# Tamper detection
from .ela import ElaResult, check_ela, compute_ela

# Location
from .exif import ExifReader, NoExifReader, PillowExifReader
from .geo import (
    GeoPoint,
    Geocoder,
    NominatimGeocoder,
    NullGeocoder,
    haversine_m,
    parse_lat_lon,
    resolve_location,
)

# Aggregation
from .verifier import (
    BatchReport,
    ImageSubmission,
    ImageVerifier,
    VerdictBuilder,
    VerdictState,
    VerificationVerdict,
)

__all__ = [
    # Config / errors
    "EngineSettings",
    "engine_settings",
    "EvidenceEngineError",
    "DecodeError",
    "GeocodeError",
    "StoreIOError",

    # Checks
    "CheckResult",
    "CHECK_ORDER",
    "REJECTION_REASONS",

    # Decoding
    "DecodedImage",
    "decode_image",
    "check_size",
    "check_format",

    # Fingerprints
    "FINGERPRINT_BITS",
    "DEFAULT_HAMMING_THRESHOLD",
    "compute_fingerprint",
    "hamming_distance",
    "find_near_duplicates",
    "is_duplicate",

    # Storage
    "FingerprintRepository",
    "InMemoryFingerprintRepository",
    "JsonFileFingerprintRepository",
    "SqlFingerprintRepository",
    "build_repository",

    # ELA
    "ElaResult",
    "compute_ela",
    "check_ela",

    # Location
    "ExifReader",
    "NoExifReader",
    "PillowExifReader",
    "GeoPoint",
    "Geocoder",
    "NominatimGeocoder",
    "NullGeocoder",
    "haversine_m",
    "parse_lat_lon",
    "resolve_location",

    # Verification
    "BatchReport",
    "ImageSubmission",
    "ImageVerifier",
    "VerdictBuilder",
    "VerdictState",
    "VerificationVerdict",
]

__version__ = "0.1.0"
