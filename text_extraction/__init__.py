"""Client for an asynchronous document text-extraction backend."""

from text_extraction.errors import (
    CacheError,
    EncodingError,
    ExtractionError,
    ExtractionFailed,
    ExtractionTimeoutError,
    ProtocolError,
    TransportError,
)
from text_extraction.service import TextExtractionService
from text_extraction.types import (
    ExtractionOptions,
    ExtractionRequest,
    ExtractionResult,
    OcrStrategy,
)

__all__ = [
    "CacheError",
    "EncodingError",
    "ExtractionError",
    "ExtractionFailed",
    "ExtractionOptions",
    "ExtractionRequest",
    "ExtractionResult",
    "ExtractionTimeoutError",
    "OcrStrategy",
    "ProtocolError",
    "TextExtractionService",
    "TransportError",
]
