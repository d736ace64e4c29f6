from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Iterator, List, Optional, Union

from .lexer import Instruction
from .parser import Node, NodeKind, parse

logger = logging.getLogger(__name__)

TAPE_LENGTH = 30000
CELL_MODULUS = 256


class StepLimitExceeded(RuntimeError):
    """Raised when Brainfuck execution exceeds the configured step budget."""


@dataclass
class BrainfuckInterpreter:
    """Tree-walking executor over a wrapping byte tape.

    ``input_stream`` and ``output_stream`` are binary streams used for ``,``
    and ``.`` when no ``input_data`` is handed to :meth:`run`. Without an
    ``output_stream`` the output is collected in ``output_buffer`` instead.
    """

    tape_length: int = TAPE_LENGTH
    input_stream: Optional[BinaryIO] = None
    output_stream: Optional[BinaryIO] = None

    tape: bytearray = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    output_buffer: List[str] = field(init=False, repr=False)
    bytes_written: int = field(init=False, repr=False)
    steps: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.tape_length < 1:
            raise ValueError("tape_length must be positive")
        self.reset()

    def reset(self) -> None:
        self.tape = bytearray(self.tape_length)
        self.pointer = 0
        self.output_buffer = []
        self.bytes_written = 0
        self.steps = 0
        self._max_steps: Optional[int] = None
        self._input_iter: Optional[Iterator[int]] = None

    @property
    def index(self) -> int:
        # Python's % is floor-modulo: always in [0, tape_length).
        return self.pointer % self.tape_length

    @property
    def current_cell(self) -> int:
        return self.tape[self.index]

    @property
    def output(self) -> str:
        return "".join(self.output_buffer)

    def run(
        self,
        program: Union[str, Node],
        input_data: Optional[Iterable[int]] = None,
        max_steps: Optional[int] = None,
    ) -> str:
        root = self.start(program, input_data, max_steps)
        self._run_children(root)
        logger.debug("run finished after %d steps", self.steps)
        return self.output

    def start(
        self,
        program: Union[str, Node],
        input_data: Optional[Iterable[int]] = None,
        max_steps: Optional[int] = None,
    ) -> Node:
        """Parse ``program`` if needed and reset state for a fresh run."""
        root = parse(program) if isinstance(program, str) else program
        self.reset()
        self._max_steps = max_steps
        if input_data is not None:
            self._input_iter = iter(list(input_data))
        return root

    def _run_children(self, node: Node) -> None:
        for child in node.children:
            if child.kind is NodeKind.LOOP:
                while self.test_loop():
                    self._run_children(child)
            else:
                self.execute(child.instruction)

    def test_loop(self) -> bool:
        """Count one step and report whether the current cell is nonzero."""
        self._tick()
        return self.current_cell != 0

    def execute(self, instruction: Instruction) -> None:
        self._tick()
        index = self.index
        if instruction is Instruction.MOVE_RIGHT:
            self.pointer += 1
        elif instruction is Instruction.MOVE_LEFT:
            self.pointer -= 1
        elif instruction is Instruction.INCREMENT:
            self.tape[index] = (self.tape[index] + 1) % CELL_MODULUS
        elif instruction is Instruction.DECREMENT:
            self.tape[index] = (self.tape[index] - 1) % CELL_MODULUS
        elif instruction is Instruction.OUTPUT:
            self._write_byte(self.tape[index])
        elif instruction is Instruction.INPUT:
            self.tape[index] = self._read_byte()

    def _tick(self) -> None:
        if self._max_steps is not None and self.steps >= self._max_steps:
            raise StepLimitExceeded("Brainfuck program exceeded allowed step count")
        self.steps += 1

    def _read_byte(self) -> int:
        if self._input_iter is not None:
            return next(self._input_iter, 0) % CELL_MODULUS
        if self.input_stream is None:
            return 0
        try:
            data = self.input_stream.read(1)
        except OSError as exc:
            logger.debug("input read failed, storing 0: %s", exc)
            return 0
        if not data:
            logger.debug("input exhausted, storing 0")
            return 0
        return data[0]

    def _write_byte(self, value: int) -> None:
        self.bytes_written += 1
        if self.output_stream is None:
            self.output_buffer.append(chr(value))
            return
        self.output_stream.write(bytes((value,)))
        self.output_stream.flush()


__all__ = [
    "BrainfuckInterpreter",
    "StepLimitExceeded",
    "TAPE_LENGTH",
]
