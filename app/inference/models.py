from dataclasses import dataclass, field
from enum import Enum


class FileState(str, Enum):
    """Processing state of a file held by the inference vendor."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @classmethod
    def from_vendor(cls, raw: str | None) -> "FileState":
        """Map the vendor's state string; anything non-terminal is PENDING."""
        if raw == "ACTIVE":
            return cls.ACTIVE
        if raw == "FAILED":
            return cls.FAILED
        return cls.PENDING


@dataclass(frozen=True)
class RemoteFile:
    """Handle to a file uploaded to the vendor's file-ingestion endpoint."""

    name: str
    uri: str
    mime_type: str
    state: FileState = FileState.PENDING


@dataclass(frozen=True)
class Candidate:
    """One generated answer."""

    text: str
    finish_reason: str | None = None


@dataclass(frozen=True)
class InferenceResponse:
    """Vendor-neutral view of a generate-content response."""

    candidates: list[Candidate] = field(default_factory=list)
    block_reason: str | None = None
