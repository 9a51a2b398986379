"""Name normalization for sanctions screening.

Names are folded to a canonical token sequence before any comparison so
that case, diacritics, punctuation, spacing and honorifics do not affect
similarity scores.
"""

import re
import unicodedata

from .types import NormalizedName, NormalizerConfig

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


class NameNormalizer:
    """Canonicalizes names into comparable token sequences.

    Usage:
        normalizer = NameNormalizer()
        name = normalizer.normalize("Dr. José  García-López Jr.")
        name.text    # "jose garcia lopez"
        name.tokens  # ("jose", "garcia", "lopez")
    """

    def __init__(self, config: NormalizerConfig | None = None) -> None:
        """Initialize the normalizer.

        Args:
            config: Optional normalizer configuration.
        """
        self._config = config or NormalizerConfig()

    @property
    def config(self) -> NormalizerConfig:
        """Get the normalizer configuration."""
        return self._config

    def normalize(self, name: str | None) -> NormalizedName:
        """Normalize a name.

        Empty or whitespace-only input yields an empty token sequence
        rather than an error. A name made up only of honorifics keeps
        its tokens so that it can still be compared.

        Args:
            name: Raw name as supplied by the caller or the watchlist.

        Returns:
            The normalized name.
        """
        original = name or ""
        folded = self._fold(original)
        tokens = folded.split()

        kept = [t for t in tokens if t not in self._config.honorifics]
        # Suffixes only trail a name; elsewhere the token is a given name
        while kept and kept[-1] in self._config.suffixes:
            kept.pop()
        if kept:
            tokens = kept

        return NormalizedName(original=original, text=" ".join(tokens), tokens=tuple(tokens))

    def _fold(self, name: str) -> str:
        """Apply unicode, case and punctuation folding."""
        if not name:
            return ""

        text = unicodedata.normalize("NFKD", name)
        if self._config.strip_diacritics:
            text = "".join(c for c in text if not unicodedata.combining(c))
        else:
            # Recompose so accented letters stay word characters
            text = unicodedata.normalize("NFC", text)
        text = text.casefold()

        text = _PUNCTUATION.sub(" ", text)
        return _WHITESPACE.sub(" ", text).strip()


# Factory function
def create_name_normalizer(config: NormalizerConfig | None = None) -> NameNormalizer:
    """Create a new name normalizer instance.

    Args:
        config: Optional configuration.

    Returns:
        A new NameNormalizer instance.
    """
    return NameNormalizer(config)
