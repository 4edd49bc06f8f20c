"""
Search criteria data models for Fast Search.

This module defines the immutable description of what a search run should match:
root directories, filename constraints, size and modification-time ranges,
required access rights and literal content words.
"""

from typing import List, Optional, Set, Tuple, Any
from pathlib import Path
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccessRight(Enum):
    """Access rights a file can be required to grant."""
    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"


class SearchCriteria(BaseModel):
    """
    Represents everything a file must satisfy to be reported.

    Each constraint group is optional; an empty list or ``None`` means
    "no constraint of this kind". The model is frozen once validated.

    Attributes:
        roots: Directories to search, resolved to absolute paths
        name_prefixes: Filename must start with at least one of these
        name_suffixes: Filename must end with at least one of these
        name_substrings: Filename must contain at least one of these
        size_range: Inclusive (min_bytes, max_bytes) range
        modified_range: Inclusive (min_epoch_millis, max_epoch_millis) range
        access: Access rights that must all be granted
        content_words: Literal, case-sensitive words searched line by line
    """

    model_config = ConfigDict(frozen=True)

    roots: Tuple[str, ...] = Field(..., min_length=1, description="Root directories to search")
    name_prefixes: Tuple[str, ...] = Field(default=(), description="Filename prefixes (any one matches)")
    name_suffixes: Tuple[str, ...] = Field(default=(), description="Filename suffixes (any one matches)")
    name_substrings: Tuple[str, ...] = Field(default=(), description="Filename substrings (any one matches)")
    size_range: Optional[Tuple[int, int]] = Field(None, description="Inclusive size range in bytes")
    modified_range: Optional[Tuple[int, int]] = Field(None, description="Inclusive modification time range in epoch millis")
    access: frozenset[AccessRight] = Field(default_factory=frozenset, description="Required access rights")
    content_words: Tuple[str, ...] = Field(default=(), description="Literal words to search for in file content")

    @field_validator('roots', mode='before')
    @classmethod
    def validate_roots(cls, v: Any) -> Tuple[str, ...]:
        """Resolve roots, drop duplicates and check that each one is a directory."""
        if isinstance(v, (str, Path)):
            v = [v]

        normalized_roots: List[str] = []
        for root in v:
            if not root or not str(root).strip():
                continue

            root_path = Path(root).expanduser().resolve()
            if not root_path.exists():
                raise ValueError(f"Root directory does not exist: {root_path}")
            if not root_path.is_dir():
                raise ValueError(f"Root path is not a directory: {root_path}")

            if str(root_path) not in normalized_roots:
                normalized_roots.append(str(root_path))

        if not normalized_roots:
            raise ValueError("No valid root directories provided")

        return tuple(normalized_roots)

    @field_validator('name_prefixes', 'name_suffixes', 'name_substrings', 'content_words', mode='before')
    @classmethod
    def drop_empty_strings(cls, v: Any) -> Tuple[str, ...]:
        """Drop empty entries from a string list; ``None`` means no constraint."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(s for s in v if s)

    @field_validator('access', mode='before')
    @classmethod
    def validate_access(cls, v: Any) -> frozenset:
        """Convert access names such as ``"Read"`` into ``AccessRight`` members."""
        if v is None:
            return frozenset()
        if isinstance(v, (str, AccessRight)):
            v = [v]

        rights: Set[AccessRight] = set()
        for item in v:
            if isinstance(item, AccessRight):
                rights.add(item)
                continue
            try:
                rights.add(AccessRight(str(item).strip().lower()))
            except ValueError:
                raise ValueError(f"Invalid access right: {item}")
        return frozenset(rights)

    @field_validator('size_range')
    @classmethod
    def validate_size_range(cls, v: Optional[Tuple[int, int]]) -> Optional[Tuple[int, int]]:
        if v is None:
            return v
        min_bytes, max_bytes = v
        if min_bytes < 0 or max_bytes < 0 or min_bytes > max_bytes:
            raise ValueError(f"Invalid size range: [{min_bytes},{max_bytes}]")
        return v

    @field_validator('modified_range')
    @classmethod
    def validate_modified_range(cls, v: Optional[Tuple[int, int]]) -> Optional[Tuple[int, int]]:
        if v is None:
            return v
        min_ts, max_ts = v
        if min_ts <= 0 or max_ts <= 0 or min_ts > max_ts:
            raise ValueError(f"Invalid modified time range: [{min_ts},{max_ts}]")
        return v

    def has_constraints(self) -> bool:
        """Check if at least one constraint group is configured."""
        return bool(
            self.name_prefixes or self.name_suffixes or self.name_substrings
            or self.size_range is not None or self.modified_range is not None
            or self.access or self.content_words
        )

    def has_content_words(self) -> bool:
        """Check if matching files still need a content scan."""
        return bool(self.content_words)

    def to_dict(self) -> dict:
        """Convert the criteria to a dictionary representation."""
        data = self.model_dump()
        data['access'] = sorted(right.value for right in self.access)
        return data

    def __str__(self) -> str:
        """String representation of the criteria."""
        parts = [f"Roots: {len(self.roots)} directories"]

        if self.name_prefixes:
            parts.append(f"Prefixes: {', '.join(self.name_prefixes)}")
        if self.name_suffixes:
            parts.append(f"Suffixes: {', '.join(self.name_suffixes)}")
        if self.name_substrings:
            parts.append(f"Names: {', '.join(self.name_substrings)}")
        if self.size_range:
            parts.append(f"Size: [{self.size_range[0]},{self.size_range[1]}]")
        if self.modified_range:
            parts.append(f"Modified: [{self.modified_range[0]},{self.modified_range[1]}]")
        if self.access:
            parts.append(f"Access: {','.join(sorted(r.value for r in self.access))}")
        if self.content_words:
            parts.append(f"Words: {', '.join(self.content_words)}")

        return " | ".join(parts)
