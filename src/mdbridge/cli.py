"""Command-line interface for mdbridge.

Usage::

    mdbridge notes.md                      # writes notes.html
    mdbridge notes.md -f docx -o out.docx  # explicit format and output path
    mdbridge notes.md -f pdf               # writes notes.pdf
    mdbridge notes.md --style academic     # use academic preset
    mdbridge --list-styles                 # list available presets
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from mdbridge import __version__
from mdbridge.converter import Converter, ExportOptions
from mdbridge.errors import ExportError
from mdbridge.logger import set_verbose
from mdbridge.style_manager import StyleManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdbridge",
        description="Export Markdown documents to HTML or DOCX.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Path to the Markdown file to export.",
    )
    parser.add_argument(
        "-o", "--output",
        help="Output file path. Defaults to <input>.<format>.",
    )
    parser.add_argument(
        "-f", "--format",
        default="html",
        choices=Converter.FORMATS,
        help="Export format (default: %(default)s).",
    )
    parser.add_argument(
        "-s", "--style",
        default="default",
        choices=StyleManager.PRESETS,
        help="Style preset (default: %(default)s).",
    )
    parser.add_argument(
        "-e", "--encoding",
        default="utf-8",
        help="Input file encoding (default: %(default)s).",
    )
    parser.add_argument(
        "-t", "--title",
        help="Document title. Defaults to the input file name.",
    )
    parser.add_argument(
        "--list-styles",
        action="store_true",
        help="List available style presets and exit.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print progress information and debug logging.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.list_styles:
        print("Available style presets:")
        for preset in StyleManager.PRESETS:
            print(f"  - {preset}")
        return 0

    if not args.input:
        parser.error("the following argument is required: input")

    set_verbose(args.verbose)

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else None
    options = ExportOptions(title=args.title or input_path.stem)

    if args.verbose:
        print(f"Input:  {input_path}")
        print(f"Format: {args.format}")
        print(f"Style:  {args.style}")

    try:
        converter = Converter(style_preset=args.style, options=options)
        written = asyncio.run(
            converter.export_file(
                input_path, output_path, fmt=args.format, encoding=args.encoding
            )
        )
    except (ExportError, UnicodeDecodeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"Output: {written}")
        print(f"Done. {written.stat().st_size} bytes written.")
    else:
        print(f"Exported: {written}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
