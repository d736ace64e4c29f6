from .bf_interpreter import TAPE_LENGTH, BrainfuckInterpreter, StepLimitExceeded
from .debugger import Debugger, Pause, StopReason
from .lexer import Instruction, normalize, scan
from .parser import Node, NodeKind, ParseError, format_tree, index_nodes, parse

__all__ = [
    "BrainfuckInterpreter",
    "Debugger",
    "Instruction",
    "Node",
    "NodeKind",
    "ParseError",
    "Pause",
    "StepLimitExceeded",
    "StopReason",
    "TAPE_LENGTH",
    "format_tree",
    "index_nodes",
    "normalize",
    "parse",
    "scan",
]
