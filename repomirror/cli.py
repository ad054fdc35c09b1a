"""CLI entry point: argparse and main()."""

from __future__ import annotations

import argparse
import io
import sys

from repomirror.state import config
from repomirror.ui import dbg, error
from repomirror.visualizer import visualize


HELP_EPILOG = """\
Commands:
  visualize [FILE]   Render a Claude stream-json session (stdin by default)

Examples:
  claude -p --output-format=stream-json --verbose < prompt.md \\
      | tee -a .repomirror/claude_output.jsonl \\
      | repomirror visualize --debug
  repomirror visualize .repomirror/claude_output.jsonl
  repomirror visualize --markdown session.jsonl
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repomirror",
        description="repomirror: sync and transform repositories using AI agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    commands = parser.add_subparsers(dest="command")

    vis = commands.add_parser("visualize", help="Visualize Claude output stream")
    vis.add_argument("file", nargs="?", default="",
                     help="JSONL session log to replay (default: stdin)")
    vis.add_argument("--debug", action="store_true", help="Show debug timestamps")
    vis.add_argument("--markdown", action="store_true",
                     help="Render the final result as markdown")
    vis.add_argument("-v", "--verbose", action="store_true",
                     help="Diagnostics on stderr (parse errors, unpaired tool calls)")
    return parser


def run_visualize(args: argparse.Namespace) -> int:
    config.debug = args.debug
    config.markdown = args.markdown
    config.verbose = args.verbose

    if not args.file:
        dbg("reading stdin")
        stream = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace")
        try:
            visualize(stream, debug=config.debug)
        except KeyboardInterrupt:
            return 130
        return 0

    try:
        f = open(args.file, encoding="utf-8", errors="replace")
    except OSError as e:
        error(f"cannot read {args.file}: {e.strerror or e}")
        return 1
    with f:
        dbg(f"replaying {args.file}")
        try:
            visualize(f, debug=config.debug)
        except KeyboardInterrupt:
            return 130
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "visualize":
        return run_visualize(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
