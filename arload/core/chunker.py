"""
Data chunker for transaction payloads.

This module provides:
- Chunk: a contiguous slice of the payload with its byte range
- DataChunker: splits a payload into bounded chunks, rebalancing the tail
  so the last chunk is never smaller than the minimum chunk size
"""

import hashlib
import logging
from typing import Iterator

from pydantic import BaseModel, ConfigDict, model_validator

from ..exceptions import MalformedInputError

logger = logging.getLogger(__name__)


# Network consensus values
MAX_CHUNK_SIZE = 256 * 1024
MIN_CHUNK_SIZE = 32


class Chunk(BaseModel):
    """A single chunk of payload data."""

    data: bytes
    min_byte_range: int
    max_byte_range: int

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_range(self) -> "Chunk":
        if self.min_byte_range < 0:
            raise ValueError("min_byte_range must be non-negative")
        if self.max_byte_range - self.min_byte_range != len(self.data):
            raise ValueError(
                f"byte range [{self.min_byte_range}, {self.max_byte_range}) "
                f"does not match data length {len(self.data)}"
            )
        return self

    @property
    def size(self) -> int:
        return self.max_byte_range - self.min_byte_range

    @property
    def data_hash(self) -> bytes:
        """SHA-256 of the chunk data."""
        return hashlib.sha256(self.data).digest()


class DataChunker:
    """
    Splits payloads into chunks for Merkle commitment.

    Chunks are cut at `max_chunk_size` from the left. When the cut would
    leave a tail shorter than `min_chunk_size`, the remaining bytes are split
    in two halves instead (the first half rounded up).
    """

    def __init__(
        self,
        max_chunk_size: int = MAX_CHUNK_SIZE,
        min_chunk_size: int = MIN_CHUNK_SIZE
    ) -> None:
        """
        Initialize chunker.

        Args:
            max_chunk_size: Maximum size of each chunk in bytes
            min_chunk_size: Minimum size of any chunk but a lone small payload
        """
        if min_chunk_size <= 0:
            raise MalformedInputError("min_chunk_size must be positive", field="min_chunk_size")
        if max_chunk_size < 2 * min_chunk_size:
            raise MalformedInputError(
                "max_chunk_size must be at least twice min_chunk_size",
                field="max_chunk_size",
            )
        self.max_chunk_size = max_chunk_size
        self.min_chunk_size = min_chunk_size

    def _next_size(self, remaining: int) -> int:
        if remaining <= self.max_chunk_size:
            return remaining
        tail = remaining - self.max_chunk_size
        if tail < self.min_chunk_size:
            return (remaining + 1) // 2
        return self.max_chunk_size

    def chunk_iter(self, data: bytes) -> Iterator[Chunk]:
        """
        Iterate over chunks in payload order.

        Args:
            data: Payload to split

        Yields:
            Chunk objects with contiguous byte ranges
        """
        data = bytes(data)
        total = len(data)
        if total == 0:
            yield Chunk(data=b"", min_byte_range=0, max_byte_range=0)
            return

        cursor = 0
        while cursor < total:
            size = self._next_size(total - cursor)
            yield Chunk(
                data=data[cursor:cursor + size],
                min_byte_range=cursor,
                max_byte_range=cursor + size,
            )
            cursor += size

    def chunk(self, data: bytes) -> list[Chunk]:
        """
        Split data into chunks.

        Args:
            data: Payload to split

        Returns:
            List of Chunk objects covering [0, len(data))
        """
        chunks = list(self.chunk_iter(data))
        logger.debug(f"Split {len(data)} bytes into {len(chunks)} chunks")
        return chunks


def chunk_data(
    data: bytes,
    max_chunk_size: int = MAX_CHUNK_SIZE,
    min_chunk_size: int = MIN_CHUNK_SIZE
) -> list[Chunk]:
    """Split a payload with the given (or network default) chunk sizes."""
    return DataChunker(max_chunk_size, min_chunk_size).chunk(data)
