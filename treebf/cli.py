from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .bf_interpreter import TAPE_LENGTH, BrainfuckInterpreter, StepLimitExceeded
from .parser import ParseError, format_tree, parse

logger = logging.getLogger(__name__)


def _read_source(path: str) -> str:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return source_path.read_text(encoding="utf-8")


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return value


def _to_input_bytes(data: str) -> List[int]:
    return list(data.encode("utf-8"))


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Tree-walking Brainfuck interpreter")
    parser.add_argument("source", help="Path to Brainfuck source file")
    parser.add_argument(
        "--input",
        help="Input supplied to the program instead of reading standard input",
    )
    parser.add_argument(
        "--max-steps",
        type=_positive_int,
        help="Abort once this many steps have executed (default: unlimited)",
    )
    parser.add_argument(
        "--tape-length",
        type=_positive_int,
        default=TAPE_LENGTH,
        help=f"Number of tape cells (default: {TAPE_LENGTH})",
    )
    parser.add_argument(
        "--dump-ast",
        action="store_true",
        help="Print the parsed loop tree instead of running the program",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        source_text = _read_source(args.source)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Cannot read source file: {exc}", file=sys.stderr)
        return 1

    try:
        program = parse(source_text)
    except ParseError as exc:
        print(f"Syntax error: {exc}", file=sys.stderr)
        return 1

    if args.dump_ast:
        sys.stdout.write(format_tree(program) + "\n")
        return 0

    input_data = None
    input_stream = None
    if args.input is not None:
        input_data = _to_input_bytes(args.input)
    else:
        input_stream = sys.stdin.buffer
    interpreter = BrainfuckInterpreter(
        tape_length=args.tape_length,
        input_stream=input_stream,
        output_stream=sys.stdout.buffer,
    )
    try:
        interpreter.run(program, input_data=input_data, max_steps=args.max_steps)
    except StepLimitExceeded as exc:
        print(f"\n{exc}", file=sys.stderr)
        return 1
    logger.debug("program wrote %d bytes", interpreter.bytes_written)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
