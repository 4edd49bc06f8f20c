"""
Configuration data models for Fast Search.

This module defines the runtime settings of a search run: worker pool sizing,
shutdown timeouts, how file content is decoded, and logging.
"""

from typing import Dict, List, Optional, Any
import os
import codecs
import logging
from pydantic import BaseModel, Field, field_validator


class PoolConfig(BaseModel):
    """
    Configuration for the content search worker pool.

    Attributes:
        min_workers: Lower bound on the number of workers
        worker_count: Exact number of workers (auto-sized when None)
        poll_interval: Seconds a worker waits on an empty queue before re-checking stop signals
        thread_name_prefix: Prefix for worker thread names
    """

    min_workers: int = Field(4, gt=0, description="Minimum number of workers")
    worker_count: Optional[int] = Field(None, gt=0, description="Exact number of workers")
    poll_interval: float = Field(0.1, gt=0, description="Blocking queue poll timeout in seconds")
    thread_name_prefix: str = Field("fast-search", min_length=1, description="Worker thread name prefix")

    def get_worker_count(self) -> int:
        """Get the number of workers to start: ``max(cpu_count, min_workers)`` unless fixed."""
        if self.worker_count is not None:
            return self.worker_count
        return max(os.cpu_count() or 1, self.min_workers)


class ShutdownConfig(BaseModel):
    """
    Configuration for the end-of-run pool shutdown.

    Attributes:
        drain_poll_interval: Seconds between queue emptiness checks
        drain_timeout: Maximum seconds to wait for the queue to drain (None waits until drained)
        orderly_timeout: Seconds to wait for workers after an orderly stop
        forced_timeout: Seconds to wait for workers after a forced stop
    """

    drain_poll_interval: float = Field(0.1, gt=0, description="Queue emptiness poll interval")
    drain_timeout: Optional[float] = Field(None, gt=0, description="Maximum time to wait for the queue to drain")
    orderly_timeout: float = Field(5.0, ge=0, description="Wait after an orderly stop request")
    forced_timeout: float = Field(5.0, ge=0, description="Wait after a forced stop request")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class ContentConfig(BaseModel):
    """
    Configuration for reading file content.

    Attributes:
        encoding: Text encoding used to read candidate files
        encoding_errors: Decode error policy passed to ``open`` (strict, ignore, replace)
    """

    encoding: str = Field("utf-8", description="Text encoding")
    encoding_errors: str = Field("strict", description="Decode error policy")

    @field_validator('encoding')
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Validate that the encoding is known to Python."""
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}")
        return v

    @field_validator('encoding_errors')
    @classmethod
    def validate_encoding_errors(cls, v: str) -> str:
        valid_policies = ['strict', 'ignore', 'replace', 'backslashreplace', 'surrogateescape']
        if v not in valid_policies:
            raise ValueError(f"Invalid encoding error policy '{v}'. Must be one of: {valid_policies}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class LoggingConfig(BaseModel):
    """
    Configuration for log output.

    Attributes:
        level: Logging level name
        format: Log record format string
    """

    level: str = Field("WARNING", description="Logging level name")
    format: str = Field("%(levelname)s %(threadName)s %(name)s: %(message)s", description="Log format")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid logging level: {v}")
        return level

    def get_level(self) -> int:
        """Get the numeric logging level."""
        return logging.getLevelName(self.level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class SearchSettings(BaseModel):
    """
    Main runtime settings for Fast Search.

    Attributes:
        pool: Content search worker pool settings
        shutdown: Pool shutdown settings
        content: Content decoding settings
        logging: Log output settings
    """

    pool: PoolConfig = Field(default_factory=PoolConfig, description="Worker pool settings")
    shutdown: ShutdownConfig = Field(default_factory=ShutdownConfig, description="Shutdown settings")
    content: ContentConfig = Field(default_factory=ContentConfig, description="Content reading settings")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")

    def validate_configuration(self) -> List[str]:
        """
        Check the settings for values that are valid but likely to cause trouble.

        Returns:
            List of warning messages
        """
        warnings = []

        if self.pool.get_worker_count() > 64:
            warnings.append(f"Large worker count ({self.pool.get_worker_count()}) may exhaust file handles")

        if self.pool.poll_interval > 5:
            warnings.append("Long poll interval will delay worker shutdown")

        if self.shutdown.orderly_timeout == 0 and self.shutdown.forced_timeout == 0:
            warnings.append("Zero shutdown timeouts will abandon workers that are still scanning")

        if self.content.encoding_errors == 'ignore':
            warnings.append("Decode errors are ignored; binary files will be scanned as text")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary representation."""
        return {
            'pool': self.pool.model_dump(),
            'shutdown': self.shutdown.to_dict(),
            'content': self.content.to_dict(),
            'logging': self.logging.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchSettings':
        """Create SearchSettings from a dictionary."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        """String representation of the settings."""
        return (f"SearchSettings(workers={self.pool.get_worker_count()}, "
                f"encoding={self.content.encoding}, log_level={self.logging.level})")


def validate_settings_dict(settings_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a settings dictionary without creating the full model.

    Args:
        settings_data: Raw settings dictionary

    Returns:
        Validated settings dictionary

    Raises:
        ValueError: If the settings are invalid
    """
    if not isinstance(settings_data, dict):
        raise ValueError(f"Settings must be a mapping, got {type(settings_data).__name__}")

    valid_sections = {'pool', 'shutdown', 'content', 'logging'}
    for key in settings_data:
        if key not in valid_sections:
            raise ValueError(f"Unknown settings section: {key}")

    try:
        SearchSettings.model_validate(settings_data)
    except Exception as e:
        raise ValueError(f"Settings validation failed: {e}") from e

    return settings_data
