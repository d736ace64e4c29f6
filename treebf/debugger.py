from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from .bf_interpreter import TAPE_LENGTH, BrainfuckInterpreter
from .lexer import normalize
from .parser import Node, NodeKind, format_tree, index_nodes, parse

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    START = "start"
    STEP = "step"
    BREAKPOINT = "breakpoint"
    FINISHED = "finished"


@dataclass
class _Frame:
    node: Node
    child: int = 0


@dataclass
class Pause:
    """What the debugger shows while it waits: the node about to run."""

    reason: StopReason
    steps: int
    position: Optional[int]
    command: Optional[str]
    depth: int
    pointer: int
    index: int
    tape_start: int
    tape: List[int]
    output: str


@dataclass
class Debugger:
    """Executes a loop tree one node at a time on an explicit frame stack.

    The debugger always pauses *before* a node. For an operator that means
    before it runs; for a loop it means before the cell test that decides
    whether the body is entered (again). Breakpoints are token positions of
    operators or loop openings.
    """

    source: str
    input_data: List[int] = field(default_factory=list)
    max_steps: Optional[int] = None
    tape_length: int = TAPE_LENGTH
    tape_window: int = 10

    def __post_init__(self) -> None:
        # Token positions index straight into the normalized code.
        self.code = normalize(self.source)
        self.program = parse(self.code)
        self.nodes: Dict[int, Node] = index_nodes(self.program)
        self.breakpoints: Set[int] = set()
        self.interpreter = BrainfuckInterpreter(tape_length=self.tape_length)
        self.restart()

    def restart(self) -> Pause:
        self.interpreter.start(self.program, self.input_data, self.max_steps)
        self._frames: List[_Frame] = [_Frame(self.program)]
        self._settle()
        self.last_pause = self._pause(StopReason.START)
        return self.last_pause

    # === Position in the tree ===

    @property
    def finished(self) -> bool:
        return not self._frames

    @property
    def current(self) -> Optional[Node]:
        if self.finished:
            return None
        frame = self._frames[-1]
        return frame.node.children[frame.child]

    @property
    def depth(self) -> int:
        """Number of loop bodies the current node sits in."""
        return max(0, len(self._frames) - 1)

    def _settle(self) -> None:
        # Pop finished bodies; the parent keeps pointing at the loop, so the
        # next node is that loop's test again.
        while self._frames:
            frame = self._frames[-1]
            if frame.child < len(frame.node.children):
                return
            self._frames.pop()

    def _advance(self) -> None:
        node = self.current
        frame = self._frames[-1]
        if node.kind is NodeKind.LOOP:
            if self.interpreter.test_loop():
                self._frames.append(_Frame(node))
            else:
                frame.child += 1
        else:
            self.interpreter.execute(node.instruction)
            frame.child += 1
        self._settle()

    # === Stepping ===

    def step(self) -> Pause:
        """Execute the current node only; a loop test may enter the body."""
        if not self.finished:
            self._advance()
        return self._stop(StopReason.STEP)

    def step_over(self) -> Pause:
        """On a loop, run it until it exits; otherwise behave like :meth:`step`."""
        node = self.current
        if node is None or node.kind is not NodeKind.LOOP:
            return self.step()
        level = len(self._frames)
        return self._run_until(lambda: len(self._frames) <= level and self.current is not node)

    def step_out(self) -> Pause:
        """Run until the loop enclosing the current node exits."""
        if self.depth == 0:
            return self.resume()
        loop = self._frames[-1].node
        level = len(self._frames)
        return self._run_until(lambda: len(self._frames) < level and self.current is not loop)

    def resume(self) -> Pause:
        """Run until a breakpoint is reached or the program ends."""
        return self._run_until(lambda: False)

    def _run_until(self, done: Callable[[], bool]) -> Pause:
        while not self.finished:
            self._advance()
            if self.finished or done():
                break
            if self.current.position in self.breakpoints:
                logger.debug("breakpoint at %d after %d steps", self.current.position, self.interpreter.steps)
                return self._stop(StopReason.BREAKPOINT)
        return self._stop(StopReason.STEP)

    def _stop(self, reason: StopReason) -> Pause:
        if self.finished:
            reason = StopReason.FINISHED
        self.last_pause = self._pause(reason)
        return self.last_pause

    # === Breakpoints ===

    def add_breakpoint(self, position: int) -> Node:
        node = self.nodes.get(position)
        if node is None:
            raise ValueError(f"No operator or loop starts at position {position}")
        self.breakpoints.add(position)
        return node

    def remove_breakpoint(self, position: int) -> bool:
        if position not in self.breakpoints:
            return False
        self.breakpoints.discard(position)
        return True

    # === Views ===

    def _pause(self, reason: StopReason) -> Pause:
        interpreter = self.interpreter
        index = interpreter.index
        start = max(0, index - self.tape_window)
        end = min(interpreter.tape_length, index + self.tape_window + 1)
        node = self.current
        return Pause(
            reason=reason,
            steps=interpreter.steps,
            position=node.position if node is not None else None,
            command=node.instruction.value if node is not None else None,
            depth=self.depth,
            pointer=interpreter.pointer,
            index=index,
            tape_start=start,
            tape=list(interpreter.tape[start:end]),
            output=interpreter.output,
        )

    def loop_stack(self) -> List[int]:
        """Positions of the loops whose bodies are executing, outermost first."""
        return [frame.node.position for frame in self._frames[1:]]

    def tree_view(self) -> str:
        return format_tree(self.program, current=self.current, breakpoints=self.breakpoints)


def format_pause(pause: Pause) -> str:
    if pause.position is None:
        where = "end of program"
    else:
        label = "loop test" if pause.command == "[" else repr(pause.command)
        where = f"{label} @{pause.position} depth={pause.depth}"
    cells = []
    for offset, value in enumerate(pause.tape):
        cell = f"{pause.tape_start + offset}:{value:03}"
        cells.append(f"[{cell}]" if pause.tape_start + offset == pause.index else cell)
    lines = [
        f"{pause.reason.value}: {where} (steps={pause.steps})",
        f"pointer={pause.pointer} index={pause.index}",
        "tape " + " ".join(cells),
    ]
    if pause.output:
        lines.append(f"output {pause.output!r}")
    return "\n".join(lines)


def input_bytes(data: str) -> List[int]:
    return list(data.encode("utf-8"))


__all__ = ["Debugger", "Pause", "StopReason", "format_pause", "input_bytes"]
