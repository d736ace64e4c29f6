"""Interactive shell around :class:`treebf.debugger.Debugger`."""

from __future__ import annotations

import argparse
import cmd
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .bf_interpreter import StepLimitExceeded
from .debugger import Debugger, Pause, format_pause, input_bytes
from .parser import ParseError


class DebuggerShell(cmd.Cmd):
    intro = "treebf debugger, type 'help' for commands"
    prompt = "(treebf) "

    def __init__(
        self,
        debugger: Debugger,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ) -> None:
        super().__init__(stdin=stdin, stdout=stdout)
        if stdin is not None:
            self.use_rawinput = False
        self.debugger = debugger

    def _say(self, text: str) -> None:
        self.stdout.write(text + "\n")

    def _show(self, action) -> None:
        try:
            pause: Pause = action()
        except StepLimitExceeded as exc:
            self._say(f"stopped: {exc}")
            return
        self._say(format_pause(pause))

    def emptyline(self) -> bool:
        return False

    def do_step(self, arg: str) -> None:
        """step: run the node under the cursor (enters a loop body)"""
        self._show(self.debugger.step)

    def do_next(self, arg: str) -> None:
        """next: like step, but runs a whole loop when paused on one"""
        self._show(self.debugger.step_over)

    def do_finish(self, arg: str) -> None:
        """finish: run until the enclosing loop exits"""
        self._show(self.debugger.step_out)

    def do_continue(self, arg: str) -> None:
        """continue: run until a breakpoint or the end"""
        self._show(self.debugger.resume)

    def do_break(self, arg: str) -> None:
        """break POS: pause before the operator or loop at token position POS"""
        try:
            node = self.debugger.add_breakpoint(int(arg))
        except ValueError as exc:
            self._say(f"cannot set breakpoint: {exc}")
            return
        self._say(f"breakpoint at {node.position} ({node.kind.value})")

    def do_delete(self, arg: str) -> None:
        """delete [POS]: remove one breakpoint, or all of them"""
        if not arg:
            self.debugger.breakpoints.clear()
            self._say("all breakpoints removed")
            return
        try:
            position = int(arg)
        except ValueError:
            self._say(f"not a position: {arg!r}")
            return
        if self.debugger.remove_breakpoint(position):
            self._say(f"breakpoint at {position} removed")
        else:
            self._say(f"no breakpoint at {position}")

    def do_tree(self, arg: str) -> None:
        """tree: show the loop tree with the cursor and breakpoints"""
        self._say(self.debugger.tree_view() or "(empty program)")

    def do_where(self, arg: str) -> None:
        """where: show the current pause and the active loops"""
        self._say(format_pause(self.debugger.last_pause))
        stack = self.debugger.loop_stack()
        if stack:
            self._say("inside loops @" + " @".join(map(str, stack)))

    def do_restart(self, arg: str) -> None:
        """restart: start the program over, keeping breakpoints"""
        self._show(self.debugger.restart)

    def do_quit(self, arg: str) -> bool:
        """quit: leave the debugger"""
        return True

    def do_EOF(self, arg: str) -> bool:
        self._say("")
        return True

    do_s = do_step
    do_n = do_next
    do_c = do_continue
    do_q = do_quit


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Step through a Brainfuck program's loop tree")
    parser.add_argument("source", help="Path to Brainfuck source file")
    parser.add_argument("--input", default="", help="Input supplied to the program")
    parser.add_argument(
        "--max-steps",
        type=int,
        default=5_000_000,
        help="Step limit (default: 5,000,000)",
    )
    parser.add_argument("--tape-window", type=int, default=10, help="Cells shown around the pointer")
    args = parser.parse_args(argv)

    try:
        source_text = Path(args.source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Cannot read source file: {exc}", file=sys.stderr)
        return 1

    try:
        debugger = Debugger(
            source_text,
            input_data=input_bytes(args.input),
            max_steps=args.max_steps,
            tape_window=args.tape_window,
        )
    except ParseError as exc:
        print(f"Syntax error: {exc}", file=sys.stderr)
        return 1

    shell = DebuggerShell(debugger)
    shell.cmdloop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
