from __future__ import annotations
import argparse
import logging
import re
import sys
from typing import TextIO
from .session import OxySession
from .errors import OxyError

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit")

_PENDING_IF = re.compile(r"if\b")
_ELSE = re.compile(r"\belse\b")
_STRING = re.compile(r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'")


def _code_only(line: str) -> str:
    return _STRING.sub("", line).split("//", 1)[0]


def _brace_delta(line: str) -> int:
    code = _code_only(line)
    return code.count("{") - code.count("}")


def run_file(path: str, stdout: TextIO | None = None, stderr: TextIO | None = None, **options) -> int:
    """Run one source file against a fresh root environment; returns the exit status."""
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    try:
        with open(path, encoding="utf-8") as f:
            source = f.read()
    except OSError as e:
        print(f"error: cannot read {path}: {e.strerror}", file=stderr)
        return 1

    logger.debug("running file %s", path)
    session = OxySession(stdout=stdout, **options)
    try:
        session.run(source)
    except OxyError as e:
        print(f"error: {e}", file=stderr)
        return 1
    return 0


def read_unit(stdin: TextIO, stdout: TextIO) -> str | None:
    """Read one input unit, continuing lines while braces are open.

    Returns None at end of input or when an exit command is entered. An `if`
    without an `else` keeps reading until a blank line so an `else` on the
    next line still belongs to it.
    """
    lines: list[str] = []
    depth = 0
    prompt = ">> "
    while True:
        stdout.write(prompt)
        stdout.flush()
        line = stdin.readline()
        if not line:
            return "\n".join(lines) if lines else None
        stripped = line.strip()
        if not lines:
            if not stripped:
                continue
            if stripped in EXIT_COMMANDS:
                return None
        lines.append(line.rstrip("\r\n"))
        depth += _brace_delta(line)
        prompt = ".. "
        if depth > 0:
            continue
        code = "\n".join(_code_only(part) for part in lines).strip()
        if stripped and _PENDING_IF.match(code) and not _ELSE.search(code):
            continue
        return "\n".join(lines)


def run_interactive(
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    **options,
) -> int:
    """Read-eval loop over one persistent session until exit or end of input."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    session = OxySession(stdout=stdout, **options)
    while True:
        unit = read_unit(stdin, stdout)
        if unit is None:
            stdout.write("\n")
            return 0
        if not unit.strip():
            continue
        try:
            session.run(unit)
        except OxyError as e:
            print(f"error: {e}", file=stderr)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oxypy",
        description="Run an OxyPy source file, or start an interactive session.",
    )
    parser.add_argument("file", nargs="?", help="source file to run (omit for interactive mode)")
    parser.add_argument(
        "--strict-assign",
        action="store_true",
        help="fail when assigning to an undeclared name instead of declaring it",
    )
    parser.add_argument(
        "--no-promote",
        action="store_true",
        help="reject mixed int/float arithmetic instead of promoting to float",
    )
    parser.add_argument(
        "--max-call-depth",
        type=int,
        default=200,
        help="maximum function call nesting depth (default: %(default)s)",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    options = {
        "implicit_declare": not args.strict_assign,
        "promote_mixed_numbers": not args.no_promote,
        "max_call_depth": args.max_call_depth,
    }
    if args.file:
        return run_file(args.file, **options)
    return run_interactive(**options)
