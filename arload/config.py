"""
arload Configuration.

Provides protocol defaults with override capability.
"""

from pydantic import BaseModel, ConfigDict, model_validator
from pathlib import Path
from typing import Any, Optional
import json
import os

from .exceptions import MalformedInputError


class ArloadConfig(BaseModel):
    """
    Configuration for transaction preparation.

    Chunk sizes default to the network consensus values; changing them
    produces data roots that remote nodes will reject.
    Environment variables override defaults (ARLOAD_* prefix).
    """

    # Chunking
    max_chunk_size: int = 256 * 1024
    min_chunk_size: int = 32

    # Transactions
    format: int = 2

    # Keys
    keyfile: Optional[Path] = None
    key_size: int = 4096

    # Batch preparation
    max_workers: Optional[int] = None  # None = executor default

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def check_chunk_sizes(self) -> "ArloadConfig":
        if self.min_chunk_size <= 0:
            raise ValueError("min_chunk_size must be positive")
        if self.max_chunk_size < 2 * self.min_chunk_size:
            raise ValueError("max_chunk_size must be at least twice min_chunk_size")
        return self

    def model_post_init(self, __context):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """Override config from environment variables."""
        env_map = {
            "ARLOAD_MAX_CHUNK_SIZE": ("max_chunk_size", int),
            "ARLOAD_MIN_CHUNK_SIZE": ("min_chunk_size", int),
            "ARLOAD_KEYFILE": ("keyfile", Path),
            "ARLOAD_KEY_SIZE": ("key_size", int),
            "ARLOAD_MAX_WORKERS": ("max_workers", int),
            "ARLOAD_LOG_LEVEL": ("log_level", str),
            "ARLOAD_LOG_FILE": ("log_file", str),
        }

        overridden = False
        for env_var, (attr, type_fn) in env_map.items():
            value = os.environ.get(env_var)
            if value is not None:
                overridden = True
                try:
                    setattr(self, attr, type_fn(value))
                except ValueError as e:
                    raise MalformedInputError(
                        f"Invalid value for {env_var}: {value!r}", field=attr
                    ) from e

        if overridden and (
            self.min_chunk_size <= 0 or self.max_chunk_size < 2 * self.min_chunk_size
        ):
            raise MalformedInputError(
                "max_chunk_size must be at least twice min_chunk_size",
                field="max_chunk_size",
            )

    def to_dict(self) -> dict[str, Any]:
        """Export config to dictionary."""
        return {
            "max_chunk_size": self.max_chunk_size,
            "min_chunk_size": self.min_chunk_size,
            "format": self.format,
            "keyfile": str(self.keyfile) if self.keyfile else None,
            "key_size": self.key_size,
            "max_workers": self.max_workers,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }

    def save(self, path: Path):
        """Save config to file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "ArloadConfig":
        """Load config from file."""
        with open(path) as f:
            data = json.load(f)

        keyfile = data.get("keyfile")
        return cls(
            max_chunk_size=data.get("max_chunk_size", 256 * 1024),
            min_chunk_size=data.get("min_chunk_size", 32),
            format=data.get("format", 2),
            keyfile=Path(keyfile) if keyfile else None,
            key_size=data.get("key_size", 4096),
            max_workers=data.get("max_workers"),
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
        )

    @classmethod
    def development(cls) -> "ArloadConfig":
        """Create development config with fast, small keys."""
        return cls(
            key_size=2048,
            log_level="DEBUG",
        )
