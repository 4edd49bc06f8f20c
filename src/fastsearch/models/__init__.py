"""
Data models for Fast Search.

This module contains all the core data structures used throughout the system.
"""

from .search_criteria import AccessRight, SearchCriteria
from .search_results import (
    AttributeMatch,
    ContentMatch,
    Decision,
    FileCandidate,
    MatchEvent,
    SearchResults,
    ShutdownReport,
    ShutdownState
)
from .config import SearchSettings

__all__ = [
    'AccessRight',
    'SearchCriteria',
    'AttributeMatch',
    'ContentMatch',
    'Decision',
    'FileCandidate',
    'MatchEvent',
    'SearchResults',
    'ShutdownReport',
    'ShutdownState',
    'SearchSettings'
]
