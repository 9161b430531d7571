"""
Object size parsing, object naming and payload generation.
"""

import logging
import uuid
from typing import Optional

from configuration import SIZE_SUFFIXES, PAYLOAD_FILL_BYTE
from common.errors import ConfigError

logger = logging.getLogger(__name__)


class SizeSpec:
    """Target object size, keeping the label the user typed (e.g. '10MB')."""

    def __init__(self, label: str, size_bytes: int):
        self.label = label
        self.size_bytes = size_bytes

    @classmethod
    def parse(cls, text: str) -> "SizeSpec":
        """Parse a human size string into a byte count.

        Accepts a bare integer (bytes) or an integer followed by a
        case-insensitive KB, MB or GB suffix. Suffixes are binary multiples,
        so 1KB is 1024 bytes.

        Raises:
            ConfigError: If the suffix is unknown or the magnitude is not a
                non-negative integer
        """
        if text is None:
            raise ConfigError("Object size is required")

        label = text.strip()
        normalized = label.upper()
        multiplier = 1
        magnitude = normalized

        for suffix, factor in SIZE_SUFFIXES.items():
            if normalized.endswith(suffix):
                multiplier = factor
                magnitude = normalized[: -len(suffix)].strip()
                break

        if not (magnitude.isascii() and magnitude.isdigit()):
            raise ConfigError(
                f"Invalid object size '{text}': expected an integer with an optional "
                f"{'/'.join(SIZE_SUFFIXES)} suffix"
            )

        return cls(label, int(magnitude) * multiplier)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SizeSpec):
            return NotImplemented
        return self.label == other.label and self.size_bytes == other.size_bytes

    def __hash__(self) -> int:
        return hash((self.label, self.size_bytes))

    def __repr__(self) -> str:
        return f"SizeSpec(label='{self.label}', size_bytes={self.size_bytes})"


class ObjectRecord:
    """One object handled by one operation. size_bytes is None until fetched."""

    __slots__ = ("key", "size_bytes")

    def __init__(self, key: str, size_bytes: Optional[int] = None):
        self.key = key
        self.size_bytes = size_bytes

    def __repr__(self) -> str:
        return f"ObjectRecord(key='{self.key}', size_bytes={self.size_bytes})"


class ObjectNamer:
    """Generates unique object keys, optionally under a prefix."""

    def __init__(self, prefix: Optional[str] = None):
        self.prefix = prefix.rstrip("/") if prefix else None

    def next_name(self) -> str:
        name = str(uuid.uuid4())
        if self.prefix:
            return f"{self.prefix}/{name}"
        return name

    def next_record(self, size_bytes: int) -> ObjectRecord:
        return ObjectRecord(self.next_name(), size_bytes)


def build_payload(size_bytes: int) -> bytes:
    """Build the upload body: size_bytes copies of a fixed byte."""
    logger.info(f"Generating {size_bytes} byte payload")
    return PAYLOAD_FILL_BYTE * size_bytes
