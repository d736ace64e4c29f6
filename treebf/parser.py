from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Collection, Dict, Iterator, List, Optional, Sequence, Union

from .lexer import Instruction, scan

logger = logging.getLogger(__name__)


class ParseError(SyntaxError):
    pass


class NodeKind(str, Enum):
    PROGRAM = "program"
    LOOP = "loop"
    OPERATOR = "operator"


# === AST Nodes ===


@dataclass
class Node:
    kind: NodeKind
    instruction: Instruction = Instruction.NO_OP
    children: List["Node"] = field(default_factory=list)
    position: int = -1

    def iter_nodes(self) -> Iterator["Node"]:
        """Yield every node below this one, depth-first, in source order."""
        for child in self.children:
            yield child
            yield from child.iter_nodes()

    def operator_count(self) -> int:
        return sum(1 for node in self.iter_nodes() if node.kind is NodeKind.OPERATOR)

    def end_position(self) -> int:
        """Index just past the last token covered by this node."""
        if self.kind is NodeKind.OPERATOR:
            return self.position + 1
        end = self.children[-1].end_position() if self.children else self.position + 1
        # A loop also covers its closing bracket.
        return end + 1 if self.kind is NodeKind.LOOP else end


# === Parser ===


def check_brackets(tokens: Sequence[Instruction]) -> None:
    stack: List[int] = []
    for index, token in enumerate(tokens):
        if token is Instruction.LOOP_START:
            stack.append(index)
        elif token is Instruction.LOOP_END:
            if not stack:
                raise ParseError("missing bracket")
            stack.pop()
    if stack:
        raise ParseError("missing bracket")


class Parser:
    """Builds the loop tree from a bracket-balanced token sequence."""

    def build(self, tokens: Sequence[Instruction]) -> Node:
        self.tokens = tokens
        self.pos = 0
        root = Node(kind=NodeKind.PROGRAM)
        self._parse_children(root)
        return root

    def _parse_children(self, node: Node) -> None:
        while self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            if token is Instruction.LOOP_START:
                loop = Node(
                    kind=NodeKind.LOOP,
                    instruction=Instruction.LOOP_START,
                    position=self.pos,
                )
                self.pos += 1
                self._parse_children(loop)
                node.children.append(loop)
            elif token is Instruction.LOOP_END:
                return
            else:
                node.children.append(
                    Node(kind=NodeKind.OPERATOR, instruction=token, position=self.pos)
                )
            self.pos += 1


def parse(program: Union[str, Sequence[Instruction]]) -> Node:
    tokens = scan(program) if isinstance(program, str) else list(program)
    # Balance is checked over the whole sequence before any node is built.
    check_brackets(tokens)
    root = Parser().build(tokens)
    logger.debug("built tree with %d top-level nodes", len(root.children))
    return root


def index_nodes(root: Node) -> Dict[int, Node]:
    """Map the token position of every operator and loop to its node."""
    return {node.position: node for node in root.iter_nodes()}


def format_tree(
    node: Node,
    depth: int = 0,
    *,
    current: Optional[Node] = None,
    breakpoints: Collection[int] = (),
) -> str:
    """Render one line per node, nested loops indented.

    When ``current`` or ``breakpoints`` are given, each line gets a gutter:
    ``=>`` marks the current node, ``*`` a breakpoint.
    """
    marked = current is not None or bool(breakpoints)
    lines: List[str] = []
    for child in node.children:
        label = "loop" if child.kind is NodeKind.LOOP else child.instruction.value
        line = f"{'    ' * depth}{label} @{child.position}"
        if marked:
            gutter = "=>" if child is current else "  "
            gutter += "*" if child.position in breakpoints else " "
            line = f"{gutter} {line}"
        lines.append(line)
        if child.children:
            lines.append(
                format_tree(child, depth + 1, current=current, breakpoints=breakpoints)
            )
    return "\n".join(lines)


__all__ = [
    "Node",
    "NodeKind",
    "ParseError",
    "Parser",
    "check_brackets",
    "format_tree",
    "index_nodes",
    "parse",
]
