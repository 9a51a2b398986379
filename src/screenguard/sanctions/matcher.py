"""Compound similarity scoring for sanctions screening.

This module scores two names by blending independent signals: an
edit-distance similarity over the normalized text, phonetic agreement
between tokens (Soundex with a Metaphone fallback) and exact token-set
overlap. The blended score is what match classification works from.
"""

from collections import Counter
from functools import lru_cache

import jellyfish

from screenguard.config import get_settings
from screenguard.core.logging import get_logger

from .normalizer import NameNormalizer
from .types import MatchingConfig, NormalizedName, ScoreBreakdown

logger = get_logger(__name__)


@lru_cache(maxsize=4096)
def _soundex(token: str) -> str:
    return jellyfish.soundex(token)


@lru_cache(maxsize=4096)
def _metaphone(token: str) -> str:
    return jellyfish.metaphone(token)


def _phonetic_eligible(token: str, min_length: int) -> bool:
    # Phonetic encoders are defined over Latin letters only
    return len(token) >= min_length and token.isascii() and token.isalpha()


def edit_similarity(a: str, b: str) -> float:
    """Levenshtein similarity normalized by the longer string.

    Returns 0.0 when either side is empty and exactly 1.0 for identical
    non-empty strings.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    distance = jellyfish.levenshtein_distance(a, b)
    return max(0.0, 1.0 - distance / max(len(a), len(b)))


def token_overlap(a: tuple[str, ...], b: tuple[str, ...]) -> float:
    """Exact-token multiset intersection divided by the larger token count."""
    if not a or not b:
        return 0.0
    shared = sum((Counter(a) & Counter(b)).values())
    return shared / max(len(a), len(b))


def score_to_percent(score: float) -> float:
    """Convert a [0, 1] similarity to the 0-100 reporting scale."""
    return round(min(1.0, max(0.0, score)) * 100.0, 6)


class SimilarityScorer:
    """Blends several name similarity signals into one score.

    Usage:
        scorer = SimilarityScorer()

        score = scorer.score("Mohammad Al-Rahman", "Mohammed Al Rahman")

        # Inspect individual signals for compliance review
        breakdown = scorer.explain("Mohammad Al-Rahman", "Mohammed Al Rahman")
        breakdown.phonetic_agreement  # True
    """

    def __init__(
        self,
        config: MatchingConfig | None = None,
        normalizer: NameNormalizer | None = None,
    ) -> None:
        """Initialize the scorer.

        Args:
            config: Optional matching configuration.
            normalizer: Normalizer applied to raw string inputs.
        """
        self._config = config or MatchingConfig()
        self._normalizer = normalizer or NameNormalizer()

        logger.info("similarity_scorer_initialized", config=self._config.model_dump())

    @property
    def config(self) -> MatchingConfig:
        """Get the matching configuration."""
        return self._config

    @property
    def normalizer(self) -> NameNormalizer:
        """Get the normalizer used for raw string inputs."""
        return self._normalizer

    def score(self, a: NormalizedName | str, b: NormalizedName | str) -> float:
        """Score two names.

        Args:
            a: First name, raw or already normalized.
            b: Second name, raw or already normalized.

        Returns:
            Similarity in [0.0, 1.0]. 1.0 is returned only when the
            normalized texts are identical.
        """
        return self.explain(a, b).score

    def explain(self, a: NormalizedName | str, b: NormalizedName | str) -> ScoreBreakdown:
        """Score two names and return every contributing signal.

        Args:
            a: First name, raw or already normalized.
            b: Second name, raw or already normalized.

        Returns:
            Breakdown of edit similarity, phonetic agreement, token
            overlap and the blended score.
        """
        left = self._as_normalized(a)
        right = self._as_normalized(b)

        if left.is_empty or right.is_empty:
            return ScoreBreakdown(edit_similarity=0.0, score=0.0)

        edit = edit_similarity(left.text, right.text)
        phonetic = self._config.use_phonetic and self.phonetic_agreement(
            left.tokens, right.tokens
        )
        overlap = token_overlap(left.tokens, right.tokens)
        strong = overlap >= self._config.strong_token_ratio

        if left.text == right.text:
            blended = 1.0
        else:
            blended = min(self.blend(edit, phonetic, strong), self._config.non_identical_ceiling)

        return ScoreBreakdown(
            edit_similarity=edit,
            phonetic_agreement=phonetic,
            token_overlap=overlap,
            strong_token_match=strong,
            score=blended,
        )

    def blend(self, base: float, phonetic: bool, strong_tokens: bool) -> float:
        """Apply the configured boosts to a base similarity, clamped to [0, 1]."""
        total = base
        if phonetic:
            total += self._config.phonetic_boost
        if strong_tokens:
            total += self._config.token_boost
        return min(1.0, max(0.0, total))

    def phonetic_agreement(self, a: tuple[str, ...], b: tuple[str, ...]) -> bool:
        """Check whether any token pair sounds alike.

        Soundex is tried first; Metaphone is the fallback when the Soundex
        codes differ. Tokens that are too short or contain anything other
        than Latin letters never vote.
        """
        min_length = self._config.min_phonetic_token_length
        left = [t for t in a if _phonetic_eligible(t, min_length)]
        right = [t for t in b if _phonetic_eligible(t, min_length)]

        for t1 in left:
            for t2 in right:
                if _soundex(t1) == _soundex(t2):
                    return True
                if self._config.use_metaphone_fallback:
                    code = _metaphone(t1)
                    if code and code == _metaphone(t2):
                        return True
        return False

    def best_match(
        self,
        query_names: list[NormalizedName],
        candidate_names: list[str],
    ) -> tuple[ScoreBreakdown, NormalizedName, str] | None:
        """Find the highest scoring pairing of query and candidate names.

        Args:
            query_names: Normalized subject name and aliases.
            candidate_names: Candidate primary name followed by its aliases.

        Returns:
            Tuple of (breakdown, query name, candidate name) for the best
            pairing, or None when either list is empty.
        """
        best: tuple[ScoreBreakdown, NormalizedName, str] | None = None
        for candidate_name in candidate_names:
            normalized = self._normalizer.normalize(candidate_name)
            for query in query_names:
                breakdown = self.explain(query, normalized)
                if best is None or breakdown.score > best[0].score:
                    best = (breakdown, query, candidate_name)
        return best

    def _as_normalized(self, name: NormalizedName | str) -> NormalizedName:
        if isinstance(name, NormalizedName):
            return name
        return self._normalizer.normalize(name)


# Factory function
def create_similarity_scorer(
    config: MatchingConfig | None = None,
    normalizer: NameNormalizer | None = None,
) -> SimilarityScorer:
    """Create a new similarity scorer.

    Uses the tuning from settings when no configuration is given.

    Args:
        config: Optional configuration.
        normalizer: Optional name normalizer.

    Returns:
        A new SimilarityScorer instance.
    """
    if config is None:
        tuning = get_settings().screening
        config = MatchingConfig(
            phonetic_boost=tuning.phonetic_boost,
            token_boost=tuning.token_boost,
            strong_token_ratio=tuning.strong_token_ratio,
        )
    return SimilarityScorer(config, normalizer)
