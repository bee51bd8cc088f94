"""Command-line interface for the timed-text player.

WHY: Compiling a transcript into captions and a timeline export is
useful without a host player: checking caption breaks, generating .vtt
files for a static site, or answering "what is playing at 01:23?".

HOW: argparse with two subcommands. ``compile`` loads segment
descriptors from JSON, compiles the Track, runs the selected formatters
and saves their outputs. ``lookup`` compiles and prints the clip_at()
hit for one virtual time as JSON. Status messages go to stderr; logging
is configured from TIMEDTEXT_LOG_LEVEL.

RULES:
- Input: a JSON list of segment descriptors (or {"segments": [...]})
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-timeline-2.json)
- Status output goes to stderr; lookup results go to stdout
- Input errors exit with status 1
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from timedtext_player import config as _config
from timedtext_player.captions import resolve_preset
from timedtext_player.core.compiler import CompileResult, compile_track
from timedtext_player.core.descriptors import load_segments_file
from timedtext_player.core.index import clip_at
from timedtext_player.core.payloads import CaptionStore
from timedtext_player.formatters import FORMATTERS
from timedtext_player.formatters.base import FormatterOutput


def _status(msg: str) -> None:
    """Print a status message to stderr (stdout stays pipeable)."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. talk-timeline.json)
    - Conflict: insert a counter before the extension, starting at 2
      (e.g. talk-timeline-2.json)
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name, suffix_ext = suffix[:dot_idx], suffix[dot_idx:]
    else:
        suffix_name, suffix_ext = suffix, ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    if isinstance(output.content, bytes):
        path.write_bytes(output.content)
    else:
        path.write_text(output.content, encoding="utf-8")
    return path


def _load_and_compile(args: argparse.Namespace, store: Optional[CaptionStore] = None) -> CompileResult:
    input_path = Path(args.input_file)
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))
    try:
        segments = load_segments_file(input_path)
    except json.JSONDecodeError as e:
        _fail("Invalid JSON in {}: {}".format(input_path, e))
    except (ValidationError, ValueError) as e:
        _fail("Invalid segment descriptors in {}: {}".format(input_path, e))

    captions = resolve_preset(
        "karaoke" if getattr(args, "karaoke", False) else "default",
        {"break_chars": getattr(args, "break_chars", None)},
    )
    return compile_track(segments, captions, store=store, language=args.language)


def _run_compile(args: argparse.Namespace) -> None:
    input_path = Path(args.input_file)
    output_dir = Path(args.output_dir) if args.output_dir else input_path.resolve().parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))

    if args.formats:
        format_keys = [f.strip() for f in args.formats.split(",") if f.strip()]
        for key in format_keys:
            if key not in FORMATTERS:
                _fail("Unknown format '{}'. Available formats: {}".format(
                    key, ", ".join(sorted(FORMATTERS))
                ))
    else:
        format_keys = list(FORMATTERS)

    _status("Compiling {}...".format(input_path.name))
    result = _load_and_compile(args, CaptionStore())
    track = result.track
    _status("  {} segments, {} cues, duration {:.3f}s".format(
        len(track.segments),
        sum(len(s.cues) for s in track.segments),
        result.duration,
    ))

    stem = input_path.stem
    saved_files = []  # type: List[Path]
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("  Running {} formatter...".format(formatter.name))
        for output in formatter.format(track):
            saved_path = _save_output(output, stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))


def _run_lookup(args: argparse.Namespace) -> None:
    track = _load_and_compile(args).track
    hit = clip_at(track, args.seconds)
    if not hit:
        _fail("No clip at {:.3f}s (duration {:.3f}s)".format(args.seconds, track.duration))

    clip_text = hit.clip.text if hit.clip is not None and hit.clip.kind == "clip" else None
    result = {
        "time": args.seconds,
        "segment": hit.segment.name,
        "segment_index": hit.segment_index,
        "offset": hit.offset,
        "native_time": hit.native_time,
        "clip": clip_text,
        "timed_text": hit.timed_text.text if hit.timed_text is not None else None,
    }
    print(json.dumps(result, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser (separate from main() for testability)."""
    parser = argparse.ArgumentParser(
        prog="timedtext_player",
        description="Compile annotated transcripts into a continuous timeline "
                    "with captions, and query it.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    compile_p = sub.add_parser("compile", help="Compile and write output formats.")
    compile_p.add_argument("input_file", help="JSON file of segment descriptors.")
    compile_p.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS))),
    )
    compile_p.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as input file).",
    )
    compile_p.add_argument(
        "--karaoke",
        action="store_true",
        help="Prefix each caption word with a WebVTT timestamp tag.",
    )
    compile_p.add_argument(
        "--break-chars",
        type=int,
        default=None,
        help="Caption break threshold in characters (default: {}).".format(
            _config.CAPTION_BREAK_CHARS
        ),
    )

    lookup_p = sub.add_parser("lookup", help="Show what plays at a virtual time.")
    lookup_p.add_argument("input_file", help="JSON file of segment descriptors.")
    lookup_p.add_argument("seconds", type=float, help="Virtual time in seconds.")

    for p in (compile_p, lookup_p):
        p.add_argument(
            "--language",
            default=_config.DEFAULT_LANGUAGE,
            help="Default caption language ISO 639-1 code (default: %(default)s).",
        )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m timedtext_player`` and the console script.

    argv=None means use sys.argv; explicit argv is for testing.
    """
    logging.basicConfig(
        level=getattr(logging, _config.LOG_LEVEL, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)
    if args.command == "compile":
        _run_compile(args)
    else:
        _run_lookup(args)


if __name__ == "__main__":
    main()
