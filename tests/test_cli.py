"""CLI tests using click's CliRunner."""

import base64
import json
from pathlib import Path

from click.testing import CliRunner

from tonicsolfa import __version__
from tonicsolfa.cli import main

HYMN = "Doh is C\nS: d r m f | s l t d'\nA: s, l, t, d | m f s m\n"


def _write(tmp_path: Path, text: str, name: str = "hymn.txt") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_version_option() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_convert_writes_midi_file(tmp_path: Path) -> None:
    source = _write(tmp_path, HYMN)
    out = tmp_path / "out.mid"

    result = CliRunner().invoke(main, ["convert", str(source), "-o", str(out)])

    assert result.exit_code == 0, result.output
    data = out.read_bytes()
    assert data.startswith(b"MThd")
    assert data[10:12] == b"\x00\x02"
    assert "Soprano, Alto" in result.output
    assert "Done!" in result.output


def test_convert_defaults_output_next_to_input(tmp_path: Path) -> None:
    source = _write(tmp_path, HYMN)
    result = CliRunner().invoke(main, ["convert", str(source)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "hymn.mid").exists()


def test_convert_single_part(tmp_path: Path) -> None:
    source = _write(tmp_path, HYMN)
    out = tmp_path / "alto.mid"
    result = CliRunner().invoke(main, ["convert", str(source), "--part", "alto", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes()[10:12] == b"\x00\x01"


def test_convert_reads_stdin(tmp_path: Path) -> None:
    out = tmp_path / "stdin.mid"
    result = CliRunner().invoke(
        main, ["convert", "-", "-o", str(out), "--tempo", "60"], input="S: d r m f\n"
    )
    assert result.exit_code == 0, result.output
    # 60 BPM → 1,000,000 µs per beat.
    assert bytes.fromhex("FF5103" "0F4240") in out.read_bytes()


def test_convert_key_option(tmp_path: Path) -> None:
    source = _write(tmp_path, "S: d r m f\n")
    out = tmp_path / "g.mid"
    result = CliRunner().invoke(main, ["convert", str(source), "--key", "G", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert "G major" in result.output
    assert bytes([0x90, 67, 100]) in out.read_bytes()


def test_convert_nothing_to_export(tmp_path: Path) -> None:
    source = _write(tmp_path, "hello there my friend\n")
    out = tmp_path / "empty.mid"
    result = CliRunner().invoke(main, ["convert", str(source), "-o", str(out)])
    assert result.exit_code == 1
    assert "Nothing to export" in result.output
    assert not out.exists()


def test_convert_missing_input_file(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["convert", str(tmp_path / "missing.txt")])
    assert result.exit_code == 1
    assert "Could not read input" in result.output


def test_convert_rejects_out_of_range_tempo(tmp_path: Path) -> None:
    source = _write(tmp_path, HYMN)
    result = CliRunner().invoke(main, ["convert", str(source), "--tempo", "5"])
    assert result.exit_code != 0


def test_inspect_prints_resolved_voices(tmp_path: Path) -> None:
    source = _write(tmp_path, HYMN)
    result = CliRunner().invoke(main, ["inspect", str(source)])
    assert result.exit_code == 0, result.output
    assert "Key: C major" in result.output
    assert "do(C4) re(D4) mi(E4) fa(F4) | sol(G4) la(A4) ti(B4) do(C5)" in result.output
    assert "Alto" in result.output


def test_inspect_json_includes_midi(tmp_path: Path) -> None:
    source = _write(tmp_path, HYMN)
    result = CliRunner().invoke(main, ["inspect", str(source), "--json"])
    assert result.exit_code == 0, result.output
    document = json.loads(result.stdout)
    assert [part["partName"] for part in document["parts"]] == ["Soprano", "Alto"]
    assert document["parts"][0]["measures"][0]["notes"][0] == {
        "pitch": "C4",
        "duration": "quarter",
    }
    assert base64.b64decode(document["midiBase64"]).startswith(b"MThd")


def test_convert_json_input_wraps_legacy_measures_as_main_part(tmp_path: Path) -> None:
    document = {
        "tempo": 60,
        "measures": [{"notes": [{"pitch": "C4", "duration": "half"}]}],
    }
    source = _write(tmp_path, json.dumps(document), name="piece.json")
    out = tmp_path / "piece.mid"

    result = CliRunner().invoke(main, ["convert", str(source), "--json-input", "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert "Voices   : Main" in result.output
    data = out.read_bytes()
    assert data[10:12] == b"\x00\x01"
    assert bytes.fromhex("FF5103" "0F4240") in data
    # Half note: Note-Off 192 ticks (VLQ 81 40) after the Note-On.
    assert bytes.fromhex("00903C64" "8140803C00") in data


def test_convert_json_input_pads_parts_to_the_longest(tmp_path: Path) -> None:
    document = {
        "parts": [
            {"partName": "Soprano", "measures": [{"notes": [{"pitch": "E4"}]}] * 2},
            {"partName": "Alto", "measures": [{"notes": [{"pitch": "C4"}]}]},
        ],
    }
    source = _write(tmp_path, json.dumps(document), name="satb.json")
    out = tmp_path / "satb.mid"

    result = CliRunner().invoke(main, ["convert", str(source), "--json-input", "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert "Measures : 2" in result.output
    assert out.read_bytes()[10:12] == b"\x00\x02"


def test_convert_json_input_rejects_invalid_json(tmp_path: Path) -> None:
    source = _write(tmp_path, "S: d r m f\n", name="not.json")
    result = CliRunner().invoke(main, ["convert", str(source), "--json-input"])
    assert result.exit_code == 1
    assert "Could not read JSON document" in result.output
