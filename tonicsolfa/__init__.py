"""tonicsolfa: Tonic Sol-fa text to pitch-resolved scores and Standard MIDI Files."""

from tonicsolfa.midi_exporter import MidiExporter, NothingToExportError
from tonicsolfa.score_models import Duration, Measure, Piece, Pitched, Rest, Voice
from tonicsolfa.solfa_parser import SolfaParser, describe_voice, looks_like_solfa

__version__ = "0.1.0"

__all__ = [
    "Duration",
    "Measure",
    "MidiExporter",
    "NothingToExportError",
    "Piece",
    "Pitched",
    "Rest",
    "SolfaParser",
    "Voice",
    "describe_voice",
    "looks_like_solfa",
]
