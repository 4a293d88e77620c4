"""Tests for the full SolfaParser pipeline and its debug helpers."""

import pytest

from tonicsolfa.key_tables import KEY_SIGNATURES
from tonicsolfa.midi_exporter import MidiExporter
from tonicsolfa.score_models import Duration, Measure, Pitched, Rest
from tonicsolfa.solfa_parser import SolfaParser, describe_voice, looks_like_solfa

SATB_HYMN = """\
// Old Hundredth (opening)
Doh is G
S: d d t, l, | s, d r m
A: s, s, s, f, | m, s, s, s,
T: m m r d | d m f s
B: d d s, f, | d
"""


def _midi_numbers(measure: Measure) -> list[int | None]:
    return [note.midi_number if isinstance(note, Pitched) else None for note in measure.notes]


def test_end_to_end_single_soprano_line() -> None:
    piece = SolfaParser(tempo=120).parse("Doh is C\nS: d r m f")

    assert piece.tempo == 120
    assert piece.key is KEY_SIGNATURES["C"]
    (voice,) = piece.voices
    assert voice.name == "Soprano"
    (measure,) = voice.measures
    assert _midi_numbers(measure) == [60, 62, 64, 65]
    assert [note.pitch.name for note in measure.notes] == ["C4", "D4", "E4", "F4"]
    assert all(note.duration is Duration.QUARTER for note in measure.notes)


def test_end_to_end_midi_bytes() -> None:
    piece = SolfaParser(tempo=120).parse("Doh is C\nS: d r m f")
    data = MidiExporter().encode(piece)

    events = (
        bytes.fromhex("00FF510307A120")
        + bytes.fromhex("00903C64" "60803C00")
        + bytes.fromhex("00903E64" "60803E00")
        + bytes.fromhex("00904064" "60804000")
        + bytes.fromhex("00904164" "60804100")
        + bytes.fromhex("00FF2F00")
    )
    expected = (
        bytes.fromhex("4D546864" "00000006" "0001" "0001" "0060")
        + b"MTrk"
        + len(events).to_bytes(4, "big")
        + events
    )
    assert data == expected


def test_satb_hymn_is_aligned_in_satb_order() -> None:
    piece = SolfaParser().parse(SATB_HYMN)

    assert piece.key is KEY_SIGNATURES["G"]
    assert [voice.name for voice in piece.voices] == ["Soprano", "Alto", "Tenor", "Bass"]
    assert piece.is_aligned
    assert piece.measure_count == 2
    # Bass wrote one note in its second measure; it is not padded inside measures.
    assert len(piece.voices[3].measures[1].notes) == 1


def test_satb_hymn_pitches_stay_in_their_ranges() -> None:
    piece = SolfaParser().parse("Doh is G\nS: d\nA: d\nT: d\nB: d")
    tops = [voice.measures[0].notes[0] for voice in piece.voices]
    assert [note.pitch.name for note in tops] == ["G4", "G3", "G3", "G2"]


def test_key_argument_overrides_directive() -> None:
    piece = SolfaParser().parse("Doh is G\nd r m", key="F")
    assert piece.key is KEY_SIGNATURES["F"]
    assert piece.voices[0].measures[0].notes[0].pitch.name == "F4"


def test_unknown_key_argument_is_ignored() -> None:
    piece = SolfaParser().parse("Doh is D\nd", key="E")
    assert piece.key is KEY_SIGNATURES["D"]


def test_unparseable_tokens_become_quarter_rests() -> None:
    piece = SolfaParser().parse("S: d zz m rest")
    notes = piece.voices[0].measures[0].notes
    assert notes[1] == Rest(Duration.QUARTER)
    assert notes[3] == Rest(Duration.QUARTER)
    assert _midi_numbers(piece.voices[0].measures[0]) == [60, None, 64, None]


def test_voices_without_lines_are_omitted() -> None:
    piece = SolfaParser().parse("d r m\nm f s")
    assert [voice.name for voice in piece.voices] == ["Soprano", "Alto"]


def test_positional_voices_resolve_in_their_own_ranges() -> None:
    piece = SolfaParser().parse("d r m\nm f s\ns l t\nd' t l")
    bass = piece.voices[3].measures[0]
    assert piece.voices[3].name == "Bass"
    # Bass d is C2 (36); d' is an octave higher.
    assert _midi_numbers(bass)[0] == 48


def test_explicit_continuation_builds_four_soprano_measures() -> None:
    piece = SolfaParser().parse("S: d r | m f\nl t | d' r'")
    (voice,) = piece.voices
    assert len(voice.measures) == 4
    assert _midi_numbers(voice.measures[3]) == [72, 74]


def test_parser_configuration_is_stored_on_piece() -> None:
    piece = SolfaParser(tempo=72, time_signature="3/4").parse("d r m")
    assert piece.tempo == 72
    assert piece.time_signature == "3/4"


def test_default_duration_applies_to_notes_rests_and_padding() -> None:
    piece = SolfaParser(default_duration=Duration.HALF).parse("S: d ? | r\nA: m")
    soprano, alto = piece.voices
    assert soprano.measures[0].notes[1] == Rest(Duration.HALF)
    assert soprano.measures[1].notes[0].duration is Duration.HALF
    assert alto.measures[1].notes == (Rest(Duration.HALF),)


def test_text_with_only_comments_yields_empty_piece() -> None:
    piece = SolfaParser().parse("// nothing here\n\n")
    assert piece.voices == ()
    assert MidiExporter().encode(piece) == b""


def test_none_text_fails_fast() -> None:
    with pytest.raises(ValueError):
        SolfaParser().parse(None)  # type: ignore[arg-type]


def test_parsing_is_deterministic() -> None:
    parser = SolfaParser()
    first = MidiExporter().encode(parser.parse(SATB_HYMN))
    second = MidiExporter().encode(parser.parse(SATB_HYMN))
    assert first == second


def test_describe_voice() -> None:
    piece = SolfaParser().parse("S: d x | s'")
    assert describe_voice(piece.voices[0]) == "do(C4) R | sol(G5)"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("d r m f s", True),
        ("S: d, r' m | f s", True),
        ("do re mi fa", True),
        ("hello there my friend", False),
        ("d r", False),
        ("C4 D4 E4 F4", False),
    ],
)
def test_looks_like_solfa(text: str, expected: bool) -> None:
    assert looks_like_solfa(text) is expected


def test_spaced_beat_colons_do_not_turn_sol_into_a_voice_label() -> None:
    piece = SolfaParser().parse("s :m :d\nd :r :m")
    assert [voice.name for voice in piece.voices] == ["Soprano", "Alto"]
    soprano = piece.voices[0].measures[0]
    assert [note.degree for note in soprano.notes] == ["sol", "mi", "do"]
