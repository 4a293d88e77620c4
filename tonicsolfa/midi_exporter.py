"""MidiExporter: encodes a Piece as a Standard MIDI File (format 1) byte stream."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from functools import reduce
from typing import Final, Iterable

from tonicsolfa.score_models import Note, Piece, Pitched, Voice

logger = logging.getLogger(__name__)

# ── SMF constants ───────────────────────────────────────────────────────────
HEADER_CHUNK_ID: Final = b"MThd"
TRACK_CHUNK_ID: Final = b"MTrk"
HEADER_LENGTH = 6
FORMAT_MULTI_TRACK = 1

NOTE_ON = 0x90  # channel 1
NOTE_OFF = 0x80  # channel 1
META_EVENT = 0xFF
META_SET_TEMPO = 0x51
META_END_OF_TRACK = 0x2F

MICROSECONDS_PER_MINUTE = 60_000_000
MAX_TEMPO_VALUE = 0xFFFFFF  # set-tempo payload is three bytes
MAX_VLQ_VALUE = 0x0FFFFFFF  # four 7-bit groups
MAX_MIDI_NUMBER = 127

ALL_PARTS = "all"


class NothingToExportError(ValueError):
    """Raised when a piece has no sounding note in any selected voice."""


# ── Variable-length quantities ──────────────────────────────────────────────

def encode_vlq(value: int) -> bytes:
    """
    Encode *value* as a MIDI variable-length quantity.

    Seven bits per byte, most significant group first; every byte but the
    last has its high bit set. Zero encodes as ``b"\\x00"``.

    Raises:
        ValueError: If *value* is negative or above 0x0FFFFFFF.
    """
    if not 0 <= value <= MAX_VLQ_VALUE:
        raise ValueError(f"VLQ value out of range: {value}")

    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def decode_vlq(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a variable-length quantity starting at *offset*.

    Returns:
        (value, offset of the first byte after the quantity)

    Raises:
        ValueError: If the data ends before the final (high-bit-clear) byte.
    """
    value = 0
    for position in range(offset, len(data)):
        byte = data[position]
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, position + 1
    raise ValueError("Truncated variable-length quantity.")


# ── Track assembly ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class _TrackState:
    """Accumulator while folding notes into track events."""

    pending_ticks: int = 0
    events: bytes = b""


class MidiExporter:
    """
    Writes a Piece as an SMF format 1 byte stream, one track per voice.

    Layout
    ------
    Header: ``MThd``, length 6, format 1, track count, 96 ticks/quarter.

    Track n: ``MTrk`` + 4-byte length, then the events, closed by an
    end-of-track meta event (delta 0). Only the first track carries the
    set-tempo meta event.

    Notes
    -----
    Every sounding note is a Note-On at the delta accumulated from the
    rests before it, followed by its Note-Off one note-length later. Rests
    emit nothing; they only add to the next Note-On's delta.
    """

    DEFAULT_VELOCITY = 100
    TICKS_PER_QUARTER = 96

    def __init__(
        self,
        velocity: int = DEFAULT_VELOCITY,
        ticks_per_quarter: int = TICKS_PER_QUARTER,
    ) -> None:
        """
        Args:
            velocity:          Note-On velocity (0-127).
            ticks_per_quarter: Division written to the header.
        """
        self.velocity = velocity
        self.ticks_per_quarter = ticks_per_quarter

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _header_chunk(self, track_count: int) -> bytes:
        return (
            HEADER_CHUNK_ID
            + HEADER_LENGTH.to_bytes(4, "big")
            + FORMAT_MULTI_TRACK.to_bytes(2, "big")
            + track_count.to_bytes(2, "big")
            + self.ticks_per_quarter.to_bytes(2, "big")
        )

    def _tempo_event(self, tempo: int) -> bytes:
        if tempo <= 0:
            raise ValueError(f"Tempo must be a positive number of BPM, got {tempo}.")
        microseconds_per_beat = MICROSECONDS_PER_MINUTE // int(tempo)
        if microseconds_per_beat > MAX_TEMPO_VALUE:
            raise ValueError(f"Tempo {tempo} BPM is too slow to encode.")
        return (
            encode_vlq(0)
            + bytes([META_EVENT, META_SET_TEMPO])
            + encode_vlq(3)
            + microseconds_per_beat.to_bytes(3, "big")
        )

    def _end_of_track_event(self) -> bytes:
        return encode_vlq(0) + bytes([META_EVENT, META_END_OF_TRACK]) + encode_vlq(0)

    def _fold_note(self, state: _TrackState, note: Note) -> _TrackState:
        ticks = note.duration.ticks(self.ticks_per_quarter)

        if not isinstance(note, Pitched):
            return _TrackState(state.pending_ticks + ticks, state.events)

        midi_number = note.midi_number
        if not 0 <= midi_number <= MAX_MIDI_NUMBER:
            logger.warning(
                "%s %s (MIDI %d) is outside the MIDI range, treating as rest.",
                note.voice,
                note.pitch.name,
                midi_number,
            )
            return _TrackState(state.pending_ticks + ticks, state.events)

        note_on = encode_vlq(state.pending_ticks) + bytes([NOTE_ON, midi_number, self.velocity])
        note_off = encode_vlq(ticks) + bytes([NOTE_OFF, midi_number, 0])
        return _TrackState(0, state.events + note_on + note_off)

    def _track_chunk(self, voice: Voice, tempo: int | None) -> bytes:
        notes = (note for measure in voice.measures for note in measure.notes)
        final = reduce(self._fold_note, notes, _TrackState())

        events = (
            (self._tempo_event(tempo) if tempo is not None else b"")
            + final.events
            + self._end_of_track_event()
        )
        return TRACK_CHUNK_ID + len(events).to_bytes(4, "big") + events

    def select_voices(self, piece: Piece, part: str | None = None) -> list[Voice]:
        """Voices named *part* (case-insensitive), or all of them for None/"all"."""
        if part is None or part.strip().lower() == ALL_PARTS:
            return list(piece.voices)
        wanted = part.strip().lower()
        return [voice for voice in piece.voices if voice.name.lower() == wanted]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encode(self, piece: Piece, part: str | None = None) -> bytes:
        """
        Encode *piece* (or only the voice named *part*) as SMF bytes.

        Returns:
            The complete file contents, or ``b""`` when no selected voice
            has a sounding note.

        Raises:
            ValueError: If the tempo cannot be encoded.
        """
        voices = self.select_voices(piece, part)
        if not any(voice.has_sounding_notes for voice in voices):
            logger.warning("No sounding notes to encode (part=%s).", part or ALL_PARTS)
            return b""

        tracks: Iterable[bytes] = (
            self._track_chunk(voice, piece.tempo if index == 0 else None)
            for index, voice in enumerate(voices)
        )
        return self._header_chunk(len(voices)) + b"".join(tracks)

    def encode_base64(self, piece: Piece, part: str | None = None) -> str:
        """The encoded stream as base64 text ("" when there is nothing to encode)."""
        return base64.b64encode(self.encode(piece, part)).decode("ascii")

    def export(self, piece: Piece, output_path: str, part: str | None = None) -> None:
        """
        Write the encoded piece to *output_path*.

        Raises:
            NothingToExportError: If no selected voice has a sounding note.
            OSError: If the output file cannot be opened for writing.
        """
        data = self.encode(piece, part)
        if not data:
            raise NothingToExportError("Nothing to export: the piece has no sounding notes.")

        with open(output_path, "wb") as f:
            f.write(data)
