"""Match strength classification for sanctions screening.

Classification is a pure function of the 0-100 similarity score. Date of
birth and document corroboration are surfaced on the match but never move
it between tiers.
"""

from datetime import UTC, datetime

from screenguard.config import get_settings

from .types import (
    ClassificationThresholds,
    CorroborationFlags,
    MatchStrength,
    SanctionsMatch,
    ScoreBreakdown,
    ScreeningSubject,
    WatchlistCandidate,
)


def _normalize_document(number: str) -> str:
    return "".join(c for c in number.upper() if c.isalnum())


class MatchClassifier:
    """Maps similarity scores to match strength tiers.

    Usage:
        classifier = MatchClassifier()
        classifier.classify(100.0)  # MatchStrength.EXACT
        classifier.classify(85.0)   # MatchStrength.HIGH
        classifier.classify(49.9)   # MatchStrength.NONE
    """

    def __init__(self, thresholds: ClassificationThresholds | None = None) -> None:
        """Initialize the classifier.

        Args:
            thresholds: Optional tier thresholds on the 0-100 scale.
        """
        self._thresholds = thresholds or ClassificationThresholds()

    @property
    def thresholds(self) -> ClassificationThresholds:
        """Get the classification thresholds."""
        return self._thresholds

    def classify(
        self,
        score: float,
        corroboration: CorroborationFlags | None = None,  # noqa: ARG002
    ) -> MatchStrength:
        """Classify a similarity score.

        Args:
            score: Similarity on the 0-100 scale.
            corroboration: Identifier agreement; accepted for reporting
                symmetry but never changes the tier.

        Returns:
            The match strength tier.
        """
        if score >= 100.0:
            return MatchStrength.EXACT
        if score >= self._thresholds.high:
            return MatchStrength.HIGH
        if score >= self._thresholds.medium:
            return MatchStrength.MEDIUM
        if score >= self._thresholds.low:
            return MatchStrength.LOW
        return MatchStrength.NONE

    def corroborate(
        self,
        subject: ScreeningSubject,
        candidate: WatchlistCandidate,
    ) -> CorroborationFlags:
        """Compare identifying fields other than the name.

        Dates of birth must agree exactly. Document numbers are compared
        ignoring case, spaces and separators.
        """
        dob_match = (
            subject.date_of_birth is not None
            and candidate.date_of_birth is not None
            and subject.date_of_birth == candidate.date_of_birth
        )

        subject_docs = {_normalize_document(d) for d in subject.document_numbers} - {""}
        candidate_docs = {_normalize_document(d) for d in candidate.document_numbers} - {""}

        return CorroborationFlags(
            dob_match=dob_match,
            document_match=bool(subject_docs & candidate_docs),
        )

    def create_match(
        self,
        subject: ScreeningSubject,
        candidate: WatchlistCandidate,
        *,
        similarity_score: float,
        query_name: str,
        matched_name: str,
        signals: ScoreBreakdown | None = None,
        matched_at: datetime | None = None,
    ) -> SanctionsMatch:
        """Build the immutable match record for a scored candidate.

        Args:
            subject: Subject being screened.
            candidate: Watchlist candidate that was scored.
            similarity_score: Best similarity on the 0-100 scale.
            query_name: Subject name or alias behind the best score.
            matched_name: Candidate name or alias behind the best score.
            signals: Component signals of the best score.
            matched_at: When the match was produced; defaults to now.

        Returns:
            The classified match.
        """
        flags = self.corroborate(subject, candidate)
        return SanctionsMatch(
            subject_id=subject.subject_id,
            list_source=candidate.list_source,
            candidate_id=candidate.candidate_id,
            matched_name=matched_name,
            query_name=query_name,
            similarity_score=similarity_score,
            match_strength=self.classify(similarity_score, flags),
            dob_match=flags.dob_match,
            document_match=flags.document_match,
            signals=signals,
            programs=list(candidate.programs),
            matched_at=matched_at or datetime.now(UTC),
        )


# Factory function
def create_match_classifier(
    thresholds: ClassificationThresholds | None = None,
) -> MatchClassifier:
    """Create a new match classifier.

    Uses the thresholds from settings when none are given.

    Args:
        thresholds: Optional classification thresholds.

    Returns:
        A new MatchClassifier instance.
    """
    if thresholds is None:
        tuning = get_settings().screening
        thresholds = ClassificationThresholds(
            high=tuning.high_threshold,
            medium=tuning.medium_threshold,
            low=tuning.low_threshold,
        )
    return MatchClassifier(thresholds)
