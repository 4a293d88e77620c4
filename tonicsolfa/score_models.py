"""Data models for resolved scores: pitches, notes, measures, voices and pieces."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from tonicsolfa.key_tables import (
    DEFAULT_KEY,
    SEMITONES_PER_OCTAVE,
    KeySignature,
    PitchClass,
)

logger = logging.getLogger(__name__)

REST_PITCH = "rest"
DEFAULT_TEMPO = 120
DEFAULT_TIME_SIGNATURE = "4/4"

# Scientific pitch notation: letter, optional accidental, octave (-1..9).
_PITCH_NAME_RE = re.compile(r"^([A-Ga-g])([#b]?)(-1|[0-9])$")


class Duration(Enum):
    """The closed set of note lengths."""

    WHOLE = "whole"
    HALF = "half"
    QUARTER = "quarter"
    EIGHTH = "eighth"
    SIXTEENTH = "sixteenth"

    @classmethod
    def parse(cls, name: Any) -> Duration:
        """Return the matching Duration; anything unrecognised is a quarter."""
        if isinstance(name, Duration):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return cls.QUARTER

    def ticks(self, ticks_per_quarter: int) -> int:
        """Length in MIDI ticks at the given division."""
        num, den = _QUARTER_RATIOS[self]
        return ticks_per_quarter * num // den


# Length of each duration as a fraction (num, den) of a quarter note.
_QUARTER_RATIOS = {
    Duration.WHOLE: (4, 1),
    Duration.HALF: (2, 1),
    Duration.QUARTER: (1, 1),
    Duration.EIGHTH: (1, 2),
    Duration.SIXTEENTH: (1, 4),
}


@dataclass(frozen=True)
class AbsolutePitch:
    """A pitch class at a concrete octave (C4 = MIDI 60)."""

    pitch_class: PitchClass
    octave: int

    @property
    def midi_number(self) -> int:
        return SEMITONES_PER_OCTAVE * (self.octave + 1) + self.pitch_class.offset

    @property
    def name(self) -> str:
        """Scientific pitch notation, e.g. "F#3"."""
        return f"{self.pitch_class.name}{self.octave}"

    def shifted(self, octaves: int) -> AbsolutePitch:
        return AbsolutePitch(self.pitch_class, self.octave + octaves)

    @classmethod
    def parse(cls, text: str) -> AbsolutePitch:
        """
        Read scientific pitch notation ("C4", "Bb2", "g#5").

        Raises:
            ValueError: If *text* is not a pitch name or lies outside MIDI 0-127.
        """
        match = _PITCH_NAME_RE.match(text.strip())
        if not match:
            raise ValueError(f"Not a pitch name: '{text}'.")
        letter, accidental, octave = match.groups()
        pitch = cls(PitchClass(letter.upper() + accidental), int(octave))
        if not 0 <= pitch.midi_number <= 127:
            raise ValueError(f"Pitch '{text}' is outside the MIDI range.")
        return pitch


@dataclass(frozen=True)
class Rest:
    """A silent slot of the given length."""

    duration: Duration = Duration.QUARTER

    @property
    def is_rest(self) -> bool:
        return True


@dataclass(frozen=True)
class Pitched:
    """
    A sounding note.

    Attributes:
        degree:   Canonical solfa degree it was written as ("sol"), or None
                  for notes read from non-solfa structured input.
        pitch:    The resolved absolute pitch.
        voice:    Name of the voice the note was resolved for.
        duration: Note length.
    """

    degree: str | None
    pitch: AbsolutePitch
    voice: str
    duration: Duration = Duration.QUARTER

    @property
    def is_rest(self) -> bool:
        return False

    @property
    def midi_number(self) -> int:
        return self.pitch.midi_number


Note = Union[Rest, Pitched]


@dataclass(frozen=True)
class Measure:
    """An ordered run of notes, played left to right."""

    notes: tuple[Note, ...]

    @property
    def is_silent(self) -> bool:
        return all(note.is_rest for note in self.notes)


@dataclass(frozen=True)
class Voice:
    """One part of the piece: a name plus its measures."""

    name: str
    measures: tuple[Measure, ...]

    @property
    def has_sounding_notes(self) -> bool:
        return any(not measure.is_silent for measure in self.measures)


@dataclass(frozen=True)
class Piece:
    """
    A complete pitch-resolved piece.

    Attributes:
        tempo:          Beats per minute.
        time_signature: Time signature string, e.g. "4/4".
        voices:         Voices in output order.
        key:            Key signature the solfa was resolved in.
    """

    tempo: int
    time_signature: str
    voices: tuple[Voice, ...]
    key: KeySignature = field(default=DEFAULT_KEY)

    @property
    def measure_count(self) -> int:
        return max((len(voice.measures) for voice in self.voices), default=0)

    @property
    def is_aligned(self) -> bool:
        """True when every voice has the same number of measures."""
        return len({len(voice.measures) for voice in self.voices}) <= 1

    @property
    def has_sounding_notes(self) -> bool:
        return any(voice.has_sounding_notes for voice in self.voices)

    # ------------------------------------------------------------------
    # Structured interchange
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the ``{"tempo", "timeSignature", "parts"}`` document shape."""
        return {
            "tempo": self.tempo,
            "timeSignature": self.time_signature,
            "parts": [
                {
                    "partName": voice.name,
                    "measures": [
                        {"notes": [_note_to_dict(note) for note in measure.notes]}
                        for measure in voice.measures
                    ],
                }
                for voice in self.voices
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Piece:
        """
        Build a Piece from a structured document.

        A document with a top-level ``measures`` list and no ``parts`` is
        read as a single part named "Main". Measures are not padded here;
        pass the result through ``MeasureAligner.align_piece`` for that.
        """
        parts = data.get("parts")
        if parts is None:
            parts = [{"partName": "Main", "measures": data.get("measures", [])}]

        voices = []
        for part in parts:
            name = str(part.get("partName") or "Main")
            measures = tuple(
                Measure(tuple(_note_from_dict(note, name) for note in measure.get("notes", [])))
                for measure in part.get("measures", [])
            )
            voices.append(Voice(name=name, measures=measures))

        return cls(
            tempo=int(data.get("tempo") or DEFAULT_TEMPO),
            time_signature=str(data.get("timeSignature") or DEFAULT_TIME_SIGNATURE),
            voices=tuple(voices),
        )


def _note_to_dict(note: Note) -> dict[str, str]:
    pitch = REST_PITCH if isinstance(note, Rest) else note.pitch.name
    return {"pitch": pitch, "duration": note.duration.value}


def _note_from_dict(data: dict[str, Any], voice: str) -> Note:
    duration = Duration.parse(data.get("duration"))
    pitch_text = str(data.get("pitch", REST_PITCH))
    if pitch_text.strip().lower() == REST_PITCH:
        return Rest(duration)
    try:
        pitch = AbsolutePitch.parse(pitch_text)
    except ValueError:
        logger.warning("Unknown pitch %r in part %s, treating as rest.", pitch_text, voice)
        return Rest(duration)
    return Pitched(degree=None, pitch=pitch, voice=voice, duration=duration)
