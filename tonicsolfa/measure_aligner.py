"""MeasureAligner: pads voices with rest measures onto a common measure grid."""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Sequence

from tonicsolfa.score_models import Duration, Measure, Piece, Rest, Voice


class MeasureAligner:
    """
    Pads every voice at the end until all voices have as many measures as
    the longest one. Each padding measure holds a single rest.
    """

    def __init__(self, default_duration: Duration = Duration.QUARTER) -> None:
        self.default_duration = default_duration

    def padding_measure(self) -> Measure:
        return Measure((Rest(self.default_duration),))

    def align_voices(self, voices: Sequence[Voice]) -> tuple[Voice, ...]:
        """Pad *voices* to a common measure count, keeping their order."""
        measure_count = max((len(voice.measures) for voice in voices), default=0)
        padding = self.padding_measure()
        return tuple(
            replace(
                voice,
                measures=voice.measures + (padding,) * (measure_count - len(voice.measures)),
            )
            for voice in voices
        )

    def align(self, measures_by_voice: Mapping[str, Sequence[Measure]]) -> tuple[Voice, ...]:
        """Build aligned voices from a name → measures mapping, keeping its order."""
        return self.align_voices(
            [Voice(name=name, measures=tuple(measures)) for name, measures in measures_by_voice.items()]
        )

    def align_piece(self, piece: Piece) -> Piece:
        return replace(piece, voices=self.align_voices(piece.voices))
