"""Watchlist and subject data access for screening.

The engine does not own watchlist or identity data. It reaches both
through the protocols below; the in-memory implementations back tests
and embedded use.
"""

from typing import Protocol

from .matcher import SimilarityScorer
from .types import (
    NormalizedName,
    PepProfile,
    SanctionsList,
    ScreeningSubject,
    WatchlistCandidate,
)


# =============================================================================
# Repository Protocols
# =============================================================================


class WatchlistRepository(Protocol):
    """Protocol for watchlist and PEP registry lookups."""

    async def find_candidates(
        self,
        normalized_name: NormalizedName,
        list_source: SanctionsList,
        min_similarity_hint: float,
    ) -> list[WatchlistCandidate]:
        """Find watchlist entries that may match a name.

        The hint lets the repository pre-filter; the engine rescores
        every returned candidate itself.
        """
        ...

    async def find_pep_candidates(
        self,
        normalized_name: NormalizedName,
        min_similarity_hint: float,
    ) -> list[PepProfile]:
        """Find PEP profiles that may match a name."""
        ...

    async def get_related_persons(self, pep_id: str) -> list[PepProfile]:
        """Get PEP profiles of relatives and close associates of a PEP."""
        ...

    async def is_list_available(self, list_source: SanctionsList) -> bool:
        """Check whether a watchlist source can currently be searched."""
        ...


class SubjectSource(Protocol):
    """Protocol for loading subjects by identifier."""

    async def get_subject(self, subject_id: str) -> ScreeningSubject | None:
        """Get a subject, or None when it does not exist."""
        ...


# =============================================================================
# In-Memory Implementations
# =============================================================================


class InMemoryWatchlistRepository:
    """In-memory implementation of WatchlistRepository for testing.

    Candidates are pre-filtered by scoring them against the query with a
    similarity scorer, the way a search index would.
    """

    def __init__(
        self,
        candidates: list[WatchlistCandidate] | None = None,
        pep_profiles: list[PepProfile] | None = None,
        scorer: SimilarityScorer | None = None,
    ) -> None:
        self._candidates: dict[SanctionsList, list[WatchlistCandidate]] = {}
        self._pep_profiles: dict[str, PepProfile] = {}
        self._unavailable: set[SanctionsList] = set()
        self._scorer = scorer or SimilarityScorer()

        for candidate in candidates or []:
            self.add_candidate(candidate)
        for profile in pep_profiles or []:
            self.add_pep_profile(profile)

    def add_candidate(self, candidate: WatchlistCandidate) -> None:
        """Add a watchlist entry."""
        self._candidates.setdefault(candidate.list_source, []).append(candidate)

    def add_pep_profile(self, profile: PepProfile) -> None:
        """Add or replace a PEP profile."""
        self._pep_profiles[profile.pep_id] = profile

    def set_list_available(self, list_source: SanctionsList, available: bool) -> None:
        """Mark a list as reachable or unreachable."""
        if available:
            self._unavailable.discard(list_source)
        else:
            self._unavailable.add(list_source)

    async def find_candidates(
        self,
        normalized_name: NormalizedName,
        list_source: SanctionsList,
        min_similarity_hint: float,
    ) -> list[WatchlistCandidate]:
        """Find watchlist entries scoring at or above the hint."""
        return [
            candidate
            for candidate in self._candidates.get(list_source, [])
            if self._passes_hint(
                normalized_name, [candidate.name, *candidate.aliases], min_similarity_hint
            )
        ]

    async def find_pep_candidates(
        self,
        normalized_name: NormalizedName,
        min_similarity_hint: float,
    ) -> list[PepProfile]:
        """Find PEP profiles scoring at or above the hint."""
        return [
            profile
            for profile in self._pep_profiles.values()
            if self._passes_hint(normalized_name, [profile.name], min_similarity_hint)
        ]

    async def get_related_persons(self, pep_id: str) -> list[PepProfile]:
        """Get registered PEP profiles linked from a profile's related persons."""
        profile = self._pep_profiles.get(pep_id)
        if profile is None:
            return []
        return [
            self._pep_profiles[related.pep_id]
            for related in profile.related_persons
            if related.pep_id is not None and related.pep_id in self._pep_profiles
        ]

    async def is_list_available(self, list_source: SanctionsList) -> bool:
        """Check whether a list has been marked unreachable."""
        return list_source not in self._unavailable

    def _passes_hint(
        self,
        query: NormalizedName,
        names: list[str],
        min_similarity_hint: float,
    ) -> bool:
        match = self._scorer.best_match([query], names)
        return match is not None and match[0].score >= min_similarity_hint


class InMemorySubjectSource:
    """In-memory implementation of SubjectSource for testing."""

    def __init__(self, subjects: list[ScreeningSubject] | None = None) -> None:
        self._subjects: dict[str, ScreeningSubject] = {}
        for subject in subjects or []:
            self.add_subject(subject)

    def add_subject(self, subject: ScreeningSubject) -> None:
        """Add or replace a subject."""
        self._subjects[subject.subject_id] = subject

    async def get_subject(self, subject_id: str) -> ScreeningSubject | None:
        """Get a subject by identifier."""
        return self._subjects.get(subject_id)
