"""tonicsolfa CLI entry point."""

import json
import logging
import sys
from pathlib import Path

import click

from tonicsolfa import __version__
from tonicsolfa.measure_aligner import MeasureAligner
from tonicsolfa.midi_exporter import MidiExporter, NothingToExportError
from tonicsolfa.score_models import Piece
from tonicsolfa.solfa_parser import SolfaParser, describe_voice, looks_like_solfa

STDIN_PATH = "-"
DEFAULT_OUTPUT = "output.mid"


def _read_notation(input_file: str) -> str:
    with click.open_file(input_file, "r", encoding="utf-8") as fh:
        return fh.read()


def _default_output(input_file: str) -> str:
    """<input stem>.mid next to the input, or output.mid for stdin."""
    if input_file == STDIN_PATH:
        return DEFAULT_OUTPUT
    return str(Path(input_file).with_suffix(".mid"))


def _parse_or_exit(notation: str, tempo: int, time_signature: str, key: str | None) -> Piece:
    if not looks_like_solfa(notation):
        click.echo("  WARNING: Input does not look like Tonic Sol-fa; parsing anyway.", err=True)

    parser = SolfaParser(tempo=tempo, time_signature=time_signature)
    try:
        return parser.parse(notation, key=key)
    except (TypeError, ValueError) as exc:
        click.echo(f"  ERROR: Could not parse notation — {exc}", err=True)
        sys.exit(1)


def _load_document_or_exit(notation: str) -> Piece:
    """Read a structured piece document, padded to a rectangular grid."""
    try:
        document = json.loads(notation)
    except json.JSONDecodeError as exc:
        click.echo(f"  ERROR: Could not read JSON document — {exc}", err=True)
        sys.exit(1)
    if not isinstance(document, dict):
        click.echo("  ERROR: JSON document must be an object with parts or measures.", err=True)
        sys.exit(1)
    try:
        piece = Piece.from_dict(document)
    except (AttributeError, TypeError, ValueError) as exc:
        click.echo(f"  ERROR: Malformed piece document — {exc}", err=True)
        sys.exit(1)
    return MeasureAligner().align_piece(piece)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="tonicsolfa")
@click.option("--verbose", "-v", is_flag=True, help="Log every skipped token and fallback.")
def main(verbose: bool) -> None:
    """tonicsolfa — Tonic Sol-fa to MIDI converter."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── convert subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(dir_okay=False, allow_dash=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to <input>.mid (output.mid for stdin).",
)
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=SolfaParser.DEFAULT_TEMPO,
    show_default=True,
    help="Playback tempo in BPM.",
)
@click.option(
    "--key",
    default=None,
    metavar="TONIC",
    help='Key to resolve "do" in (C, G, D, A, F, Bb, Eb). Overrides "Doh is ..." in the text.',
)
@click.option(
    "--part",
    default="all",
    show_default=True,
    metavar="NAME",
    help="Export only this voice (soprano, alto, tenor, bass).",
)
@click.option(
    "--time-signature",
    default=SolfaParser.DEFAULT_TIME_SIGNATURE,
    show_default=True,
    help="Time signature recorded on the parsed piece.",
)
@click.option(
    "--json-input",
    is_flag=True,
    help="Read INPUT_FILE as a structured piece document (tempo and time signature come from it).",
)
def convert(
    input_file: str,
    output: str | None,
    tempo: int,
    key: str | None,
    part: str,
    time_signature: str,
    json_input: bool,
) -> None:
    """
    Convert a Tonic Sol-fa text file into a Standard MIDI File.

    INPUT_FILE is a UTF-8 text file, or - to read from stdin.

    \b
    Examples:
      tonicsolfa convert hymn.txt
      tonicsolfa convert hymn.txt --key G --tempo 90 -o hymn.mid
      tonicsolfa convert hymn.txt --part alto -o alto.mid
      tonicsolfa convert piece.json --json-input
    """
    resolved_output = output if output is not None else _default_output(input_file)

    click.echo(f"tonicsolfa v{__version__}")
    click.echo(f"  Input  : {input_file}")
    tempo_label = "from document" if json_input else f"{tempo} BPM"
    click.echo(f"  Tempo  : {tempo_label}  |  Part: {part}")
    click.echo()

    # ── Step 1: Read ────────────────────────────────────────────────
    click.echo("[1/3] Reading notation...")
    try:
        notation = _read_notation(input_file)
    except OSError as exc:
        click.echo(f"  ERROR: Could not read input — {exc}", err=True)
        sys.exit(1)

    # ── Step 2: Parse ───────────────────────────────────────────────
    if json_input:
        click.echo("[2/3] Reading structured piece...")
        piece = _load_document_or_exit(notation)
    else:
        click.echo("[2/3] Resolving solfa to pitches...")
        piece = _parse_or_exit(notation, tempo, time_signature, key)
        click.echo(f"      Key      : {piece.key.name}")
    click.echo(f"      Voices   : {', '.join(v.name for v in piece.voices) or 'none'}")
    click.echo(f"      Measures : {piece.measure_count}")

    # ── Step 3: Export ──────────────────────────────────────────────
    click.echo(f"[3/3] Writing MIDI file → '{resolved_output}'...")
    try:
        MidiExporter().export(piece, resolved_output, part=part)
    except NothingToExportError:
        click.echo("  ERROR: Nothing to export — no selected voice has a sounding note.", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"  ERROR: Could not encode MIDI — {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file — {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in MuseScore or any MIDI player.")


# ── inspect subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(dir_okay=False, allow_dash=True))
@click.option("--key", default=None, metavar="TONIC", help="Override the key directive.")
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the structured piece (with base64 MIDI) as JSON instead.",
)
def inspect(input_file: str, key: str | None, as_json: bool) -> None:
    """
    Show how each line of INPUT_FILE was assigned and resolved.

    Rests print as R, notes as degree(pitch), e.g. sol(G4).
    """
    try:
        notation = _read_notation(input_file)
    except OSError as exc:
        click.echo(f"  ERROR: Could not read input — {exc}", err=True)
        sys.exit(1)

    piece = _parse_or_exit(notation, SolfaParser.DEFAULT_TEMPO, SolfaParser.DEFAULT_TIME_SIGNATURE, key)

    if as_json:
        document = piece.to_dict()
        document["midiBase64"] = MidiExporter().encode_base64(piece)
        click.echo(json.dumps(document, indent=2))
        return

    click.echo(f"Key: {piece.key.name}")
    for voice in piece.voices:
        click.echo(f"{voice.name:<8} {describe_voice(voice)}")
