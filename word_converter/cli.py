"""Command-line interface for the markdown → Word converter.

WHY: Notes sometimes need converting outside the host application, in
scripts or batch jobs. The CLI wires the converter to the file system:
read the note, resolve its images on disk, run the formatters, and save
the results next to the note (or to --output-dir).

HOW: Uses argparse for the note path, output options, and settings
overrides. Settings come from --settings (a host settings JSON file) or
the defaults, then individual flags override them. Runs the async
conversion via asyncio.run(). Status messages go to stderr.

RULES:
- Positional argument: input markdown file path
- --formats: comma-separated formatter keys (default: docx)
- Title is the note's file name without extension
- Images resolve relative to the note, then by name below --vault-root
- Output naming: {stem}{suffix}, numeric suffix for conflicts (note-2.docx)
- Status output goes to stderr (not stdout)
- Errors print "Error: ..." to stderr and exit with status 1
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from word_converter.config import PAGE_SIZES, ConverterSettings, load_settings
from word_converter.converter import ConversionError, MarkdownToDocxConverter
from word_converter.formatters import FORMATTERS
from word_converter.formatters.base import FormatterOutput
from word_converter.resources.local import LocalResourceResolver

MARKDOWN_SUFFIXES = {".md", ".markdown", ".txt"}


def _status(msg: str) -> None:
    """Print a status message to stderr, flushed so it shows immediately."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. note.docx)
    - Conflict: the counter goes before the extension (note-2.docx)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx >= 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    """Write one formatter output to disk; strings as UTF-8, bytes as-is."""
    path = _resolve_output_path(stem, output.suffix, output_dir)
    if isinstance(output.content, bytes):
        path.write_bytes(output.content)
    else:
        path.write_text(output.content, encoding="utf-8")
    return path


def _build_settings(args: argparse.Namespace) -> ConverterSettings:
    """Merge the settings file (if any) with command-line overrides."""
    base = load_settings(args.settings) if args.settings else ConverterSettings()
    overrides: Dict[str, Any] = {}
    if args.page_size:
        overrides["page_size"] = args.page_size
    if args.font_family:
        overrides["default_font_family"] = args.font_family
    if args.font_size is not None:
        overrides["default_font_size"] = args.font_size
    if args.no_formatting:
        overrides["preserve_formatting"] = False
    if args.title_header:
        overrides["include_filename_as_header"] = True
    if args.use_theme:
        overrides["use_theme_appearance"] = True
    if args.include_metadata:
        overrides["include_metadata"] = True
    if args.timeout is not None:
        overrides["remote_fetch_timeout_s"] = args.timeout if args.timeout > 0 else None
    if not overrides:
        return base
    return ConverterSettings.from_dict({**asdict(base), **overrides})


def _load_theme(path: Optional[str]) -> Optional[Dict[str, Any]]:
    if not path:
        return None
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Theme file {} must contain a JSON object".format(path))
    return data


async def _run_pipeline(args: argparse.Namespace) -> None:
    """Convert one note and save every requested output."""
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))
    if input_path.suffix.lower() not in MARKDOWN_SUFFIXES:
        _status("Warning: {} does not look like a markdown file".format(input_path.name))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))

    format_keys = [f.strip() for f in args.formats.split(",") if f.strip()]
    for key in format_keys:
        if key not in FORMATTERS:
            available = ", ".join(sorted(FORMATTERS.keys()))
            _fail("Unknown format '{}'. Available formats: {}".format(key, available))

    try:
        settings = _build_settings(args)
        theme = _load_theme(args.theme)
    except (OSError, ValueError) as e:
        _fail(str(e))

    stem = input_path.stem
    vault_root = Path(args.vault_root).resolve() if args.vault_root else input_path.parent
    resolver = LocalResourceResolver(input_path.parent, vault_root)
    converter = MarkdownToDocxConverter(settings)

    _status("Reading {}...".format(input_path.name))
    markdown = input_path.read_text(encoding="utf-8")

    try:
        _status("Converting...")
        document = await converter.build_document(markdown, stem, theme, resolver)
        _status("  {} blocks".format(len(document.blocks)))

        saved_files: List[Path] = []
        for output in converter.render(document, format_keys):
            saved_path = _save_output(output, stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))
    except ConversionError as e:
        _fail(str(e))

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser; kept separate from main() for tests."""
    parser = argparse.ArgumentParser(
        prog="word_converter",
        description="Convert a markdown note into a Word document.",
    )

    parser.add_argument("input_file", help="Path to the markdown note to convert.")

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as input file).",
    )
    parser.add_argument(
        "--formats",
        default="docx",
        help="Comma-separated list of output formats. "
             "Available: {}. Default: %(default)s.".format(", ".join(sorted(FORMATTERS.keys()))),
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="Path to a JSON settings file (camelCase or snake_case keys).",
    )
    parser.add_argument(
        "--theme",
        default=None,
        help="Path to a JSON theme snapshot (fonts and sizes captured from the editor).",
    )
    parser.add_argument(
        "--vault-root",
        default=None,
        help="Root directory searched for embedded images (default: the note's directory).",
    )
    parser.add_argument(
        "--page-size",
        choices=sorted(PAGE_SIZES.keys()),
        default=None,
        help="Page size (default: from settings, else A4).",
    )
    parser.add_argument("--font-family", default=None, help="Default body font family.")
    parser.add_argument("--font-size", type=int, default=None, help="Default body font size in points.")
    parser.add_argument(
        "--no-formatting",
        action="store_true",
        help="Drop inline styling; keep only the text.",
    )
    parser.add_argument(
        "--title-header",
        action="store_true",
        help="Insert the note's file name as a level-1 heading.",
    )
    parser.add_argument(
        "--use-theme",
        action="store_true",
        help="Match fonts and sizes from the --theme snapshot.",
    )
    parser.add_argument(
        "--include-metadata",
        action="store_true",
        help="Render front matter at the top and copy it into document properties.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each image fetch; 0 disables the limit.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``word-converter`` and ``python -m word_converter``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_run_pipeline(args))


if __name__ == "__main__":
    main()
