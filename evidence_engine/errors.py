"""Exceptions raised by the verification engine."""


class EvidenceEngineError(Exception):
    """Base class for verification engine errors."""


class DecodeError(EvidenceEngineError):
    """Bytes are not a recognized raster image or exceed the size limit."""


class GeocodeError(EvidenceEngineError):
    """A free-text location could not be resolved by the geocoding service."""


class StoreIOError(EvidenceEngineError):
    """The fingerprint history could not be read or written."""
