from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any


class OcrStrategy(StrEnum):
    TESSERACT = "tesseract"
    EASYOCR = "easyocr"


# -- Sources ------------------------------------------------------------------


@dataclass(frozen=True)
class FileSource:
    path: Path


@dataclass(frozen=True)
class UrlSource:
    url: str


@dataclass(frozen=True)
class BytesSource:
    data: bytes
    filename: str


@dataclass(frozen=True)
class TextSource:
    text: str
    filename: str = "raw-text.txt"


Source = FileSource | UrlSource | BytesSource | TextSource


# -- Requests -----------------------------------------------------------------


@dataclass(frozen=True)
class ExtractionOptions:
    ocr_strategy: OcrStrategy | None = None
    # None means "not explicitly set": cached locally, not forwarded
    use_cache: bool | None = None

    def __post_init__(self) -> None:
        if self.ocr_strategy is not None and not isinstance(self.ocr_strategy, OcrStrategy):
            # Raises ValueError for unknown strategy names
            object.__setattr__(self, "ocr_strategy", OcrStrategy(self.ocr_strategy))

    @property
    def cache_enabled(self) -> bool:
        return self.use_cache is not False


@dataclass(frozen=True)
class ExtractionRequest:
    source: Source
    options: ExtractionOptions = field(default_factory=ExtractionOptions)

    @classmethod
    def from_path(cls, path: str | Path, **options: Any) -> ExtractionRequest:
        return cls(source=FileSource(Path(path)), options=ExtractionOptions(**options))

    @classmethod
    def from_url(cls, url: str, **options: Any) -> ExtractionRequest:
        return cls(source=UrlSource(url), options=ExtractionOptions(**options))

    @classmethod
    def from_bytes(cls, data: bytes, filename: str, **options: Any) -> ExtractionRequest:
        return cls(source=BytesSource(data, filename), options=ExtractionOptions(**options))

    @classmethod
    def from_text(cls, text: str, **options: Any) -> ExtractionRequest:
        return cls(source=TextSource(text), options=ExtractionOptions(**options))


# -- Results ------------------------------------------------------------------


@dataclass(frozen=True)
class ExtractionResult:
    content: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "metadata": dict(self.metadata)}


# -- Task status --------------------------------------------------------------


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Processing:
    pass


@dataclass(frozen=True)
class Completed:
    result: ExtractionResult


@dataclass(frozen=True)
class Failed:
    reason: str


TaskStatus = Pending | Processing | Completed | Failed

# Opaque backend-issued identifier; never parsed
TaskHandle = str
