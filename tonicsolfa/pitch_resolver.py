"""PitchResolver: turns a solfa syllable into an absolute pitch for a voice."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Mapping

from tonicsolfa.key_tables import SEMITONES_PER_OCTAVE, KeySignature, VocalRange
from tonicsolfa.score_models import AbsolutePitch, Duration, Pitched

#: Every spelling accepted for each degree, lower-case.
SOLFA_ABBREVIATIONS: Final[Mapping[str, str]] = MappingProxyType(
    {
        "d": "do", "r": "re", "m": "mi", "f": "fa", "s": "sol", "l": "la", "t": "ti",
        "do": "do", "re": "re", "mi": "mi", "fa": "fa", "sol": "sol", "so": "sol",
        "la": "la", "ti": "ti", "si": "ti",
    }
)

#: Tokens that explicitly mean "rest" rather than unreadable noise.
REST_TOKENS: Final[frozenset[str]] = frozenset({"rest", "x", "-", "*"})

OCTAVE_UP_MARKS: Final[frozenset[str]] = frozenset({"'", "’"})
OCTAVE_DOWN_MARKS: Final[frozenset[str]] = frozenset({",", "_"})
_OCTAVE_MARKS: Final = OCTAVE_UP_MARKS | OCTAVE_DOWN_MARKS


@dataclass(frozen=True)
class OctaveMarkedToken:
    """A token with its trailing octave marks removed and counted."""

    syllable: str
    shift: int


def strip_octave_marks(token: str) -> OctaveMarkedToken:
    """
    Remove trailing octave marks right to left.

    Each up mark adds one octave, each down mark subtracts one; marks may
    be mixed ("d',") and repeated ("s,,").
    """
    syllable = token
    shift = 0
    while syllable and syllable[-1] in _OCTAVE_MARKS:
        shift += 1 if syllable[-1] in OCTAVE_UP_MARKS else -1
        syllable = syllable[:-1]
    return OctaveMarkedToken(syllable=syllable, shift=shift)


def normalize_syllable(syllable: str) -> str | None:
    """Return the canonical degree for a spelling, or None if it is not solfa."""
    return SOLFA_ABBREVIATIONS.get(syllable.strip().lower())


class PitchResolver:
    """
    Resolves syllables to pitches inside a voice's vocal range.

    Algorithm
    ---------
    1. Strip and count trailing octave marks.
    2. Normalise the syllable to a degree ("s" → "sol").
    3. Look up the degree's pitch class in the key.
    4. Take the lowest octave in ``SEARCH_OCTAVES`` that lands inside the
       voice's range, or the range's default octave when none does.
    5. Move by the counted octave marks. The result may leave the range;
       an explicit mark is never clamped.
    """

    SEARCH_OCTAVES: Final[range] = range(2, 7)

    def base_pitch(self, degree: str, key: KeySignature, vocal_range: VocalRange) -> AbsolutePitch:
        """Place *degree* in the lowest searched octave that fits *vocal_range*."""
        pitch_class = key.pitch_class(degree)
        for octave in self.SEARCH_OCTAVES:
            midi_number = SEMITONES_PER_OCTAVE * (octave + 1) + pitch_class.offset
            if vocal_range.contains(midi_number):
                return AbsolutePitch(pitch_class, octave)
        return AbsolutePitch(pitch_class, vocal_range.default_octave)

    def resolve(
        self,
        token: str,
        key: KeySignature,
        vocal_range: VocalRange,
        duration: Duration = Duration.QUARTER,
    ) -> Pitched | None:
        """
        Resolve one token for the voice owning *vocal_range*.

        Returns:
            The Pitched note, or None when the token is not a solfa syllable
            (the caller renders that slot as a rest).
        """
        marked = strip_octave_marks(token.strip())
        degree = normalize_syllable(marked.syllable)
        if degree is None:
            return None

        pitch = self.base_pitch(degree, key, vocal_range).shifted(marked.shift)
        return Pitched(degree=degree, pitch=pitch, voice=vocal_range.voice, duration=duration)

    @staticmethod
    def is_rest_token(token: str) -> bool:
        return token.strip().lower() in REST_TOKENS
