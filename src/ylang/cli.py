"""Command-line entry point: JSON parse tree in, target source out."""

from __future__ import annotations

import json
import logging
import sys

from .frontend import BuildError, build_tree
from .ir import to_dict
from .middleend import analyze
from .pipeline import compile_tree, validate_tree

PHASES: list[str] = ["build", "analyze"]

USAGE: str = """\
ylang [OPTIONS] [INPUT] [-o OUTPUT]

Reads a Y parse tree as JSON from INPUT (or stdin) and prints the
translated program.

Options:
  --target TARGET     Output language: typescript (ts), rust (rs), go (golang)
  --stop-at PHASE     Stop after phase and print its result as JSON:
                      build, analyze
  --validate          Build and analyze only; report errors and warnings
  --no-warnings       Do not print warnings
  --verbose           Log pipeline progress to stderr
  -o, --output FILE   Write output to FILE instead of stdout
  -h, --help          Show this help message
"""


class Options:
    """Parsed command-line options."""

    def __init__(self) -> None:
        self.target: str = "typescript"
        self.stop_at: str | None = None
        self.validate: bool = False
        self.warnings: bool = True
        self.verbose: bool = False
        self.input_file: str | None = None
        self.output_file: str | None = None


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read input from file or stdin. Returns (text, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("error: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    if len(raw) == 0:
        return ("", 0)
    try:
        return (raw.decode("utf-8"), 0)
    except ValueError:
        print("error: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w") as f:
                f.write(output)
                if not output.endswith("\n"):
                    f.write("\n")
        except OSError:
            print("error: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    print(output)
    return 0


def _print_prefixed(prefix: str, messages: list[str]) -> None:
    for msg in messages:
        print(prefix + msg, file=sys.stderr)


def _usage_error(msg: str) -> None:
    print("error: " + msg, file=sys.stderr)
    sys.exit(2)


def parse_args(args: list[str] | None = None) -> Options:
    """Parse command-line arguments, exiting with status 2 on misuse."""
    if args is None:
        args = sys.argv[1:]
    opts = Options()
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg == "--target":
            if i + 1 >= len(args):
                _usage_error("--target requires an argument")
            opts.target = args[i + 1]
            i += 2
        elif arg == "--stop-at":
            if i + 1 >= len(args):
                _usage_error("--stop-at requires an argument")
            opts.stop_at = args[i + 1]
            i += 2
        elif arg == "-o" or arg == "--output":
            if i + 1 >= len(args):
                _usage_error(arg + " requires an argument")
            opts.output_file = args[i + 1]
            i += 2
        elif arg == "--validate":
            opts.validate = True
            i += 1
        elif arg == "--no-warnings":
            opts.warnings = False
            i += 1
        elif arg == "--verbose":
            opts.verbose = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            _usage_error("unknown flag '" + arg + "'")
        else:
            if opts.input_file is not None:
                _usage_error("unexpected argument '" + arg + "'")
            if arg != "-":
                opts.input_file = arg
            i += 1
    if opts.stop_at is not None and opts.stop_at not in PHASES:
        _usage_error("unknown phase '" + opts.stop_at + "'")
    if opts.stop_at is not None and opts.validate:
        _usage_error("--stop-at and --validate are mutually exclusive")
    return opts


def run_phases(tree: object, stop_at: str, show_warnings: bool) -> tuple[int, str]:
    """Run the pipeline up to stop_at. Returns (exit_code, json_output)."""
    try:
        program = build_tree(tree)
    except BuildError as e:
        print("error: Build error: " + str(e), file=sys.stderr)
        return (1, "")
    if stop_at == "build":
        return (0, json.dumps(to_dict(program), indent=2))
    warnings = analyze(program)
    if show_warnings:
        _print_prefixed("warning: ", warnings)
    return (0, json.dumps({"warnings": warnings}, indent=2))


def main() -> int:
    """Main entry point."""
    opts = parse_args()
    if opts.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    text, err = read_source(opts.input_file)
    if err != 0:
        return err
    if len(text.strip()) == 0:
        print("error: no input provided", file=sys.stderr)
        return 2
    try:
        tree = json.loads(text)
    except json.JSONDecodeError as e:
        print("error: invalid JSON input: " + str(e), file=sys.stderr)
        return 1
    if opts.stop_at is not None:
        exit_code, output = run_phases(tree, opts.stop_at, opts.warnings)
        if exit_code != 0:
            return exit_code
        return write_output(output, opts.output_file)
    if opts.validate:
        vresult = validate_tree(tree)
        _print_prefixed("error: ", vresult.errors)
        if opts.warnings:
            _print_prefixed("warning: ", vresult.warnings)
        if not vresult.valid:
            return 1
        return 0
    result = compile_tree(tree, opts.target)
    if not result.success:
        _print_prefixed("error: ", result.errors)
        return 1
    if opts.warnings:
        _print_prefixed("warning: ", result.warnings)
    return write_output(result.code or "", opts.output_file)


__all__ = ["PHASES", "USAGE", "main", "parse_args"]


if __name__ == "__main__":
    sys.exit(main())
