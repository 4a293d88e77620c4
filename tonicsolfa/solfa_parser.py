"""SolfaParser: runs the full text → Piece pipeline for Tonic Sol-fa input."""

from __future__ import annotations

import logging
import re

from tonicsolfa.key_tables import KeySignature, key_signature_for, vocal_range_for
from tonicsolfa.measure_aligner import MeasureAligner
from tonicsolfa.pitch_resolver import SOLFA_ABBREVIATIONS, PitchResolver
from tonicsolfa.score_models import (
    DEFAULT_TEMPO,
    DEFAULT_TIME_SIGNATURE,
    Duration,
    Measure,
    Note,
    Piece,
    Rest,
    Voice,
)
from tonicsolfa.tokenizer import Tokenizer
from tonicsolfa.voice_assigner import VoiceAssigner

logger = logging.getLogger(__name__)

# Share of words that must be solfa syllables for text to count as solfa.
SOLFA_WORD_RATIO = 0.4
MIN_SOLFA_WORDS = 3
_WORD_PUNCTUATION_RE = re.compile(r"[.,;!?'’_-]")


def looks_like_solfa(text: str) -> bool:
    """
    Heuristic check that *text* is Tonic Sol-fa rather than prose or
    letter-name notation: at least three words, more than 40% of them
    solfa syllables once punctuation and octave marks are stripped.
    """
    words = text.lower().split()
    if len(words) < MIN_SOLFA_WORDS:
        return False
    solfa_count = sum(
        1 for word in words if _WORD_PUNCTUATION_RE.sub("", word) in SOLFA_ABBREVIATIONS
    )
    return solfa_count / len(words) > SOLFA_WORD_RATIO


def describe_note(note: Note) -> str:
    if isinstance(note, Rest):
        return "R"
    if note.degree is None:
        return note.pitch.name
    return f"{note.degree}({note.pitch.name})"


def describe_voice(voice: Voice) -> str:
    """One-line debug view of a voice, e.g. ``do(C4) re(D4) | R``."""
    return " | ".join(
        " ".join(describe_note(note) for note in measure.notes) for measure in voice.measures
    )


class SolfaParser:
    """
    Parses Tonic Sol-fa text into an aligned, pitch-resolved Piece.

    Pipeline
    --------
    Tokenizer → VoiceAssigner → PitchResolver → MeasureAligner.

    Every syllable becomes a quarter note. Tokens that are not syllables
    become quarter rests, so noisy input (OCR output, titles) never aborts
    a parse. Only SATB voices that received at least one measure appear in
    the result, in SATB order.
    """

    DEFAULT_TEMPO = DEFAULT_TEMPO
    DEFAULT_TIME_SIGNATURE = DEFAULT_TIME_SIGNATURE

    def __init__(
        self,
        tempo: int = DEFAULT_TEMPO,
        time_signature: str = DEFAULT_TIME_SIGNATURE,
        default_duration: Duration = Duration.QUARTER,
    ) -> None:
        """
        Args:
            tempo:            Tempo stored on every parsed Piece (BPM).
            time_signature:   Time signature stored on every parsed Piece.
            default_duration: Length given to notes, rests and padding.
        """
        self.tempo = tempo
        self.time_signature = time_signature
        self.default_duration = default_duration
        self.tokenizer = Tokenizer()
        self.voice_assigner = VoiceAssigner(self.tokenizer)
        self.pitch_resolver = PitchResolver()
        self.measure_aligner = MeasureAligner(default_duration)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _resolve_key(self, detected: KeySignature, override: str | None) -> KeySignature:
        if not override:
            return detected
        key = key_signature_for(override)
        if key is None:
            logger.warning("Ignoring unknown key %r, using %s.", override, detected.name)
            return detected
        return key

    def _resolve_token(self, token: str, voice: str, key: KeySignature) -> Note:
        note = self.pitch_resolver.resolve(
            token, key, vocal_range_for(voice), self.default_duration
        )
        if note is not None:
            return note
        if not self.pitch_resolver.is_rest_token(token):
            logger.debug("Unparseable token %r in %s, treating as rest.", token, voice)
        return Rest(self.default_duration)

    def _resolve_measure(self, tokens: list[str], voice: str, key: KeySignature) -> Measure:
        return Measure(tuple(self._resolve_token(token, voice, key) for token in tokens))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, text: str, key: str | None = None) -> Piece:
        """
        Parse solfa *text* into a Piece.

        Args:
            text: Raw notation, optionally containing "Doh is X" / "Key: X".
            key:  Tonic that overrides the text's directive, e.g. "G".

        Raises:
            ValueError: If *text* is None.
            TypeError:  If *text* is not a string.
        """
        tokenized = self.tokenizer.tokenize(text)
        active_key = self._resolve_key(tokenized.key, key)

        measures_by_voice = {
            voice: [self._resolve_measure(tokens, voice, active_key) for tokens in measures]
            for voice, measures in self.voice_assigner.assign(tokenized.lines).items()
            if measures
        }
        voices = self.measure_aligner.align(measures_by_voice)
        logger.debug(
            "Parsed %d line(s) into %d voice(s) in %s.",
            len(tokenized.lines),
            len(voices),
            active_key.name,
        )

        return Piece(
            tempo=self.tempo,
            time_signature=self.time_signature,
            voices=voices,
            key=active_key,
        )

