"""Static key-signature and vocal-range tables used by the pitch resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final, Mapping

# ── Pitch-class constants ───────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12

#: Semitone offset from C for every spelling the key tables can produce.
PITCH_CLASS_OFFSETS: Final[Mapping[str, int]] = MappingProxyType(
    {
        "C": 0, "C#": 1, "Db": 1, "D": 2, "D#": 3, "Eb": 3, "E": 4, "F": 5,
        "F#": 6, "Gb": 6, "G": 7, "G#": 8, "Ab": 8, "A": 9, "A#": 10, "Bb": 10,
        "B": 11,
    }
)

#: Canonical solfa degrees in scale order.
DEGREES: Final[tuple[str, ...]] = ("do", "re", "mi", "fa", "sol", "la", "ti")


@dataclass(frozen=True)
class PitchClass:
    """One of the twelve semitones, spelled the way the active key spells it."""

    name: str

    def __post_init__(self) -> None:
        if self.name not in PITCH_CLASS_OFFSETS:
            raise ValueError(f"Unknown pitch class spelling '{self.name}'.")

    @property
    def offset(self) -> int:
        """Semitones above C (0-11)."""
        return PITCH_CLASS_OFFSETS[self.name]


@dataclass(frozen=True)
class KeySignature:
    """
    A major key: the tonic plus the pitch class of each solfa degree.

    Attributes:
        tonic:   Spelling of "do" in this key, e.g. "Bb".
        degrees: Mapping of every degree in ``DEGREES`` to its PitchClass.
    """

    tonic: str
    degrees: Mapping[str, PitchClass] = field(hash=False)

    def __post_init__(self) -> None:
        missing = [degree for degree in DEGREES if degree not in self.degrees]
        if missing:
            raise ValueError(
                f"Key of {self.tonic} is missing degree(s): {', '.join(missing)}."
            )
        object.__setattr__(self, "degrees", MappingProxyType(dict(self.degrees)))

    @property
    def name(self) -> str:
        return f"{self.tonic} major"

    def pitch_class(self, degree: str) -> PitchClass:
        return self.degrees[degree]


@dataclass(frozen=True)
class VocalRange:
    """
    Comfortable singing range for one choral voice.

    Attributes:
        voice:          Canonical voice name ("Soprano", ...).
        min_midi:       Lowest MIDI number, inclusive.
        max_midi:       Highest MIDI number, inclusive.
        default_octave: Octave used when no searched octave fits the range.
    """

    voice: str
    min_midi: int
    max_midi: int
    default_octave: int

    def contains(self, midi_number: int) -> bool:
        return self.min_midi <= midi_number <= self.max_midi


def _build_key(tonic: str, spellings: tuple[str, ...]) -> KeySignature:
    return KeySignature(
        tonic=tonic,
        degrees={degree: PitchClass(name) for degree, name in zip(DEGREES, spellings)},
    )


# ── Key tables ──────────────────────────────────────────────────────────────

KEY_SIGNATURES: Final[Mapping[str, KeySignature]] = MappingProxyType(
    {
        "C": _build_key("C", ("C", "D", "E", "F", "G", "A", "B")),
        "G": _build_key("G", ("G", "A", "B", "C", "D", "E", "F#")),
        "D": _build_key("D", ("D", "E", "F#", "G", "A", "B", "C#")),
        "A": _build_key("A", ("A", "B", "C#", "D", "E", "F#", "G#")),
        "F": _build_key("F", ("F", "G", "A", "Bb", "C", "D", "E")),
        "Bb": _build_key("Bb", ("Bb", "C", "D", "Eb", "F", "G", "A")),
        "Eb": _build_key("Eb", ("Eb", "F", "G", "Ab", "Bb", "C", "D")),
    }
)

DEFAULT_KEY: Final[KeySignature] = KEY_SIGNATURES["C"]

# ── Voices and ranges ───────────────────────────────────────────────────────

SOPRANO = "Soprano"
ALTO = "Alto"
TENOR = "Tenor"
BASS = "Bass"

#: Canonical SATB order, also the positional round-robin order.
VOICE_ORDER: Final[tuple[str, ...]] = (SOPRANO, ALTO, TENOR, BASS)

VOCAL_RANGES: Final[Mapping[str, VocalRange]] = MappingProxyType(
    {
        SOPRANO: VocalRange(SOPRANO, min_midi=60, max_midi=81, default_octave=5),  # C4-A5
        ALTO: VocalRange(ALTO, min_midi=55, max_midi=76, default_octave=4),  # G3-E5
        TENOR: VocalRange(TENOR, min_midi=48, max_midi=69, default_octave=4),  # C3-A4
        BASS: VocalRange(BASS, min_midi=36, max_midi=60, default_octave=3),  # C2-C4
    }
)


def normalize_tonic(tonic: str) -> str:
    """
    Normalise a user-typed tonic to the key-table spelling.

    "bb" → "Bb", "f#" → "F#", "Fs" → "F#". Only a single accidental after
    the letter is rewritten; longer spellings keep their tail as typed.
    """
    cleaned = tonic.strip()
    if not cleaned:
        return cleaned
    letter, accidental = cleaned[0].upper(), cleaned[1:]
    if len(accidental) != 1:
        return letter + accidental
    accidental = accidental.lower()
    return letter + ("#" if accidental == "s" else accidental)


def key_signature_for(tonic: str) -> KeySignature | None:
    """Return the key table for *tonic*, or None if there is no such table."""
    return KEY_SIGNATURES.get(normalize_tonic(tonic))


def vocal_range_for(voice: str) -> VocalRange:
    """Return the range for *voice*; unknown voices sing in the soprano range."""
    return VOCAL_RANGES.get(voice.strip().capitalize(), VOCAL_RANGES[SOPRANO])
