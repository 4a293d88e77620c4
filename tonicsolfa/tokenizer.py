"""Tokenizer: splits raw solfa text into lines, measures and syllable tokens."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Final

from tonicsolfa.key_tables import DEFAULT_KEY, KeySignature, key_signature_for

logger = logging.getLogger(__name__)

#: "Doh is Bb" / "Key: G" anywhere in the text. The tonic must sit on the
#: directive's own line; a bare "Key:" label is removed without changing key.
KEY_DIRECTIVE_RE: Final = re.compile(r"(?:Doh is|Key:)[ \t]*([A-G][b#]?)?", re.IGNORECASE)

COMMENT_PREFIX = "//"
MEASURE_SEPARATOR = "|"
_TOKEN_SEPARATOR_RE: Final = re.compile(r"[\s.:]+")


@dataclass(frozen=True)
class TokenizedText:
    """
    Result of the first tokenizing pass.

    Attributes:
        key:   Key signature named by the directive (C major by default).
        lines: Trimmed, non-blank, non-comment lines in source order.
    """

    key: KeySignature
    lines: tuple[str, ...]


class Tokenizer:
    """
    Splits notation text into the pieces the rest of the pipeline consumes.

    The key directive is removed before lines are split so it never reaches
    the voice assigner as a line of music.
    """

    def tokenize(self, text: str) -> TokenizedText:
        """
        Extract the key directive and the logical lines of *text*.

        Raises:
            ValueError: If *text* is None.
            TypeError:  If *text* is not a string.
        """
        if text is None:
            raise ValueError("No notation text was supplied; expected a string of solfa.")
        if not isinstance(text, str):
            raise TypeError(f"Notation text must be a string, not {type(text).__name__}.")

        key, cleaned = self.detect_key(text)
        lines = tuple(
            stripped
            for stripped in (line.strip() for line in cleaned.splitlines())
            if stripped and not stripped.startswith(COMMENT_PREFIX)
        )
        return TokenizedText(key=key, lines=lines)

    def detect_key(self, text: str) -> tuple[KeySignature, str]:
        """
        Find a key directive and return (key, text with the directive removed).

        An unknown tonic still has its directive removed, but the key falls
        back to C major.
        """
        match = KEY_DIRECTIVE_RE.search(text)
        if match is None:
            return DEFAULT_KEY, text

        cleaned = text[: match.start()] + text[match.end():]
        if match.group(1) is None:
            return DEFAULT_KEY, cleaned
        key = key_signature_for(match.group(1))
        if key is None:
            logger.warning("No key table for tonic %r, using C major.", match.group(1))
            return DEFAULT_KEY, cleaned
        return key, cleaned

    def split_measures(self, line: str) -> list[str]:
        """Split a line on bar lines, dropping empty measures."""
        return [
            measure.strip()
            for measure in line.split(MEASURE_SEPARATOR)
            if measure.strip()
        ]

    def split_tokens(self, measure: str) -> list[str]:
        """Split a measure on whitespace, periods and colons."""
        return [token for token in _TOKEN_SEPARATOR_RE.split(measure) if token]
