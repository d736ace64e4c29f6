from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List

logger = logging.getLogger(__name__)


class Instruction(str, Enum):
    MOVE_RIGHT = ">"
    MOVE_LEFT = "<"
    INCREMENT = "+"
    DECREMENT = "-"
    OUTPUT = "."
    INPUT = ","
    LOOP_START = "["
    LOOP_END = "]"
    NO_OP = ""


_SYMBOLS: Dict[str, Instruction] = {
    instruction.value: instruction for instruction in Instruction if instruction.value
}


def scan(source: str) -> List[Instruction]:
    """Map every instruction character of ``source`` to its token.

    Any other character is a comment and is dropped.
    """
    tokens = [_SYMBOLS[ch] for ch in source if ch in _SYMBOLS]
    logger.debug("scanned %d tokens from %d characters", len(tokens), len(source))
    return tokens


def normalize(source: str) -> str:
    return "".join(token.value for token in scan(source))


__all__ = ["Instruction", "normalize", "scan"]
