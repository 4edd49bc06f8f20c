"""
Filter pipeline for Fast Search.

Evaluates one FileCandidate against SearchCriteria. Constraint groups are checked in a
fixed order (prefix, suffix, name substring, modified time, size, access) and the first
configured group that fails rejects the file. Files that pass every group are accepted,
or deferred to the content search when content words are configured.
"""

from typing import Callable, List, Tuple

from ..models.search_criteria import AccessRight, SearchCriteria
from ..models.search_results import Decision, FileCandidate


GroupCheck = Callable[[FileCandidate], bool]


class FilterPipeline:
    """
    Stateless predicate chain built once from immutable criteria.

    Only configured groups are kept in the chain, so an unconfigured group
    costs nothing per file.
    """

    def __init__(self, criteria: SearchCriteria):
        self.criteria = criteria
        self._checks = self._build_checks(criteria)
        self._defer = criteria.has_content_words()

    def _build_checks(self, criteria: SearchCriteria) -> List[Tuple[str, GroupCheck]]:
        checks: List[Tuple[str, GroupCheck]] = []

        if criteria.name_prefixes:
            checks.append(('prefix', self._check_prefix))
        if criteria.name_suffixes:
            checks.append(('suffix', self._check_suffix))
        if criteria.name_substrings:
            checks.append(('name', self._check_name))
        if criteria.modified_range is not None:
            checks.append(('modified', self._check_modified))
        if criteria.size_range is not None:
            checks.append(('size', self._check_size))
        if criteria.access:
            checks.append(('access', self._check_access))

        return checks

    @property
    def group_names(self) -> List[str]:
        """Names of the configured groups in evaluation order."""
        return [name for name, _ in self._checks]

    def decide(self, candidate: FileCandidate) -> Decision:
        """
        Evaluate a candidate.

        Args:
            candidate: File metadata snapshot

        Returns:
            REJECT if any configured group fails, DEFER_TO_CONTENT_SEARCH if all pass
            and content words are configured, ACCEPT otherwise
        """
        return self.evaluate(candidate)[0]

    def evaluate(self, candidate: FileCandidate) -> Tuple[Decision, str]:
        """
        Evaluate a candidate and report which group decided.

        Returns:
            Tuple of (decision, name of the rejecting group or empty string)
        """
        for name, check in self._checks:
            if not check(candidate):
                return Decision.REJECT, name

        if self._defer:
            return Decision.DEFER_TO_CONTENT_SEARCH, ''
        return Decision.ACCEPT, ''

    def _check_prefix(self, candidate: FileCandidate) -> bool:
        return any(candidate.name.startswith(prefix) for prefix in self.criteria.name_prefixes)

    def _check_suffix(self, candidate: FileCandidate) -> bool:
        return any(candidate.name.endswith(suffix) for suffix in self.criteria.name_suffixes)

    def _check_name(self, candidate: FileCandidate) -> bool:
        return any(substring in candidate.name for substring in self.criteria.name_substrings)

    def _check_modified(self, candidate: FileCandidate) -> bool:
        min_ts, max_ts = self.criteria.modified_range
        return min_ts <= candidate.modified_millis <= max_ts

    def _check_size(self, candidate: FileCandidate) -> bool:
        min_bytes, max_bytes = self.criteria.size_range
        return min_bytes <= candidate.size <= max_bytes

    def _check_access(self, candidate: FileCandidate) -> bool:
        granted = {
            AccessRight.READ: candidate.readable,
            AccessRight.WRITE: candidate.writable,
            AccessRight.EXECUTE: candidate.executable,
        }
        return all(granted[right] for right in self.criteria.access)


def matches(candidate: FileCandidate, criteria: SearchCriteria) -> Decision:
    """
    Evaluate a single candidate against criteria.

    Args:
        candidate: File metadata snapshot
        criteria: Search criteria

    Returns:
        The filter decision for the candidate
    """
    return FilterPipeline(criteria).decide(candidate)
