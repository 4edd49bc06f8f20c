"""
Search results data models for Fast Search.

This module defines the per-file metadata snapshot evaluated by the filter
pipeline, the match events produced during a run, and the summary returned
once the run has finished.
"""

from typing import Dict, List, Optional, Any, Tuple, Union
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .search_criteria import SearchCriteria


class Decision(Enum):
    """Outcome of evaluating one file against the search criteria."""
    REJECT = "reject"
    ACCEPT = "accept"
    DEFER_TO_CONTENT_SEARCH = "defer"


class MatchType(Enum):
    """Kinds of match events."""
    ATTRIBUTE = "attribute"
    CONTENT = "content"


class FileCandidate(BaseModel):
    """
    Metadata snapshot of one regular file found during the walk.

    Attributes:
        path: Canonical absolute path of the file
        name: Filename without directory
        size: File size in bytes
        modified_millis: Last modification time in epoch milliseconds
        readable: Whether the current process may read the file
        writable: Whether the current process may write the file
        executable: Whether the current process may execute the file
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Canonical path to the file")
    name: str = Field(..., description="Filename without directory")
    size: int = Field(..., ge=0, description="File size in bytes")
    modified_millis: int = Field(..., description="Last modification time in epoch millis")
    readable: bool = Field(False, description="Read access granted")
    writable: bool = Field(False, description="Write access granted")
    executable: bool = Field(False, description="Execute access granted")


class AttributeMatch(BaseModel):
    """A file that satisfied every attribute constraint and needs no content scan."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Canonical path to the matched file")

    @property
    def match_type(self) -> MatchType:
        return MatchType.ATTRIBUTE

    def __str__(self) -> str:
        return self.path


class ContentMatch(BaseModel):
    """
    One line of a file that contains at least one content word.

    Attributes:
        path: Canonical path to the file
        line_number: 1-based line number
        line_text: The line as read, without its line terminator
        matched_words: Configured words found on the line, in configured order
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Canonical path to the file")
    line_number: int = Field(..., ge=1, description="1-based line number")
    line_text: str = Field(..., description="Raw line text")
    matched_words: Tuple[str, ...] = Field(default=(), description="Words found on the line")

    @property
    def match_type(self) -> MatchType:
        return MatchType.CONTENT

    def __str__(self) -> str:
        return f"match:{self.path},{self.line_number},[ {self.line_text} ]"


MatchEvent = Union[AttributeMatch, ContentMatch]


class ShutdownState(Enum):
    """Lifecycle of a search run once the worker pool has been started."""
    WALKING = "walking"
    DRAINING = "draining"
    STOPPING = "stopping"
    TERMINATED = "terminated"


class ShutdownReport(BaseModel):
    """
    How the worker pool was brought down at the end of a run.

    Attributes:
        state: Final coordinator state
        clean: Whether every worker exited before the timeouts elapsed
        forced: Whether the forced stop had to be used
        abandoned_workers: Number of workers still alive when the run finished
    """

    state: ShutdownState = Field(ShutdownState.TERMINATED, description="Final coordinator state")
    clean: bool = Field(True, description="All workers exited in time")
    forced: bool = Field(False, description="Forced stop was requested")
    abandoned_workers: int = Field(0, ge=0, description="Workers left running")


class SearchResults(BaseModel):
    """
    Complete results from a search run.

    Attributes:
        criteria: The criteria that produced these results
        attribute_matches: Files accepted on attributes alone, in walk order
        content_matches: Matching lines, in emission order
        walker_stats: Counters reported by the directory walker
        pool_stats: Counters reported by the content search pool
        execution_time: Time taken by the run in seconds
        timestamp: When the run started
        errors: Errors encountered during the run
        shutdown: How the worker pool was shut down
    """

    criteria: SearchCriteria = Field(..., description="The criteria for this run")
    attribute_matches: List[AttributeMatch] = Field(default_factory=list, description="Attribute matches")
    content_matches: List[ContentMatch] = Field(default_factory=list, description="Content matches")
    walker_stats: Dict[str, int] = Field(default_factory=dict, description="Directory walker counters")
    pool_stats: Dict[str, int] = Field(default_factory=dict, description="Content search pool counters")
    execution_time: float = Field(0.0, ge=0.0, description="Time taken to execute the search")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the search was started")
    errors: List[str] = Field(default_factory=list, description="Errors encountered during the run")
    shutdown: Optional[ShutdownReport] = Field(None, description="Worker pool shutdown report")

    @field_validator('execution_time')
    @classmethod
    def validate_execution_time(cls, v: float) -> float:
        return round(v, 6)

    def get_match_count(self) -> int:
        """Get the total number of match events."""
        return len(self.attribute_matches) + len(self.content_matches)

    def add_match(self, match: MatchEvent) -> None:
        """Add a match event to the results."""
        if match.match_type is MatchType.CONTENT:
            self.content_matches.append(match)
        else:
            self.attribute_matches.append(match)

    def add_error(self, error: str) -> None:
        """Add an error message to the results."""
        self.errors.append(error)

    def has_errors(self) -> bool:
        """Check if any errors occurred during the run."""
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert search results to dictionary representation."""
        data = self.model_dump()
        data['criteria'] = self.criteria.to_dict()
        data['match_count'] = self.get_match_count()
        data['timestamp'] = self.timestamp.isoformat()
        if self.shutdown:
            data['shutdown']['state'] = self.shutdown.state.value
        return data

    def __str__(self) -> str:
        """String representation of search results."""
        parts = [f"Found {len(self.attribute_matches)} files"]
        parts.append(f"{len(self.content_matches)} matching lines")
        parts.append(f"Scanned {self.walker_stats.get('files_visited', 0)} files")
        parts.append(f"Took {self.execution_time:.2f}s")

        if self.has_errors():
            parts.append(f"Errors: {len(self.errors)}")

        return " | ".join(parts)
