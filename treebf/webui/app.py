from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Response, status
from pydantic import BaseModel, Field

from treebf.bf_interpreter import TAPE_LENGTH, BrainfuckInterpreter, StepLimitExceeded
from treebf.debugger import Debugger, Pause, input_bytes
from treebf.parser import Node, ParseError, parse

from .store import DebugSessionStore

logger = logging.getLogger(__name__)

RUN_STEP_LIMIT = 1_000_000
DRY_RUN_STEPS = 10_000


def count_steps(
    program: Node, input_data: List[int], tape_length: int, cap: int = DRY_RUN_STEPS
) -> Tuple[int, bool]:
    """Run ``program`` once to learn its length; the flag is set when ``cap`` cut it short."""
    interpreter = BrainfuckInterpreter(tape_length=tape_length)
    try:
        interpreter.run(program, input_data=input_data, max_steps=cap)
    except StepLimitExceeded:
        return cap, True
    return interpreter.steps, False


def _unprocessable(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message)


def _parse(code: str) -> Node:
    try:
        return parse(code)
    except ParseError as exc:
        raise _unprocessable(str(exc)) from exc


class DebugAction(str, Enum):
    STEP = "step"
    NEXT = "next"
    FINISH = "finish"
    CONTINUE = "continue"
    RESTART = "restart"


class RunConfiguration(BaseModel):
    code: str = ""
    input: str = ""
    max_steps: int = Field(default=RUN_STEP_LIMIT, ge=1)
    tape_length: int = Field(default=TAPE_LENGTH, ge=1)


class RunResult(BaseModel):
    output: str
    steps: int


class DebugConfiguration(RunConfiguration):
    tape_window: int = Field(default=10, ge=0)


class PauseModel(BaseModel):
    reason: str
    steps: int
    position: Optional[int]
    command: Optional[str]
    depth: int
    pointer: int
    index: int
    tape_start: int
    tape: List[int]
    output: str

    @classmethod
    def from_pause(cls, pause: Pause) -> "PauseModel":
        return cls(
            reason=pause.reason.value,
            steps=pause.steps,
            position=pause.position,
            command=pause.command,
            depth=pause.depth,
            pointer=pause.pointer,
            index=pause.index,
            tape_start=pause.tape_start,
            tape=pause.tape,
            output=pause.output,
        )


class DebugPayload(BaseModel):
    session_id: str
    code: str
    tree: str
    pause: PauseModel
    loop_stack: List[int]
    breakpoints: List[int]
    finished: bool
    total_steps: int
    total_steps_capped: bool


def create_app(store: Optional[DebugSessionStore] = None) -> FastAPI:
    sessions = store if store is not None else DebugSessionStore()
    # Dry-run results per session, computed once when the session is opened.
    totals: Dict[str, Tuple[int, bool]] = {}
    app = FastAPI(title="treebf API", version="0.1.0")

    def _debugger(session_id: str) -> Debugger:
        try:
            return sessions.get(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.args[0]) from exc

    def _payload(session_id: str, debugger: Debugger) -> DebugPayload:
        total_steps, capped = totals.get(session_id, (0, True))
        return DebugPayload(
            session_id=session_id,
            code=debugger.code,
            tree=debugger.tree_view(),
            pause=PauseModel.from_pause(debugger.last_pause),
            loop_stack=debugger.loop_stack(),
            breakpoints=sorted(debugger.breakpoints),
            finished=debugger.finished,
            total_steps=total_steps,
            total_steps_capped=capped,
        )

    @app.post("/api/run", response_model=RunResult)
    def run_program(payload: RunConfiguration) -> RunResult:
        program = _parse(payload.code)
        interpreter = BrainfuckInterpreter(tape_length=payload.tape_length)
        try:
            output = interpreter.run(
                program,
                input_data=input_bytes(payload.input),
                max_steps=payload.max_steps,
            )
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return RunResult(output=output, steps=interpreter.steps)

    @app.post("/api/debug", response_model=DebugPayload, status_code=status.HTTP_201_CREATED)
    def open_session(payload: DebugConfiguration) -> DebugPayload:
        program = _parse(payload.code)
        data = input_bytes(payload.input)
        debugger = Debugger(
            payload.code,
            input_data=data,
            max_steps=payload.max_steps,
            tape_length=payload.tape_length,
            tape_window=payload.tape_window,
        )
        session_id = sessions.open(debugger)
        totals[session_id] = count_steps(program, data, payload.tape_length)
        for stale in [key for key in totals if key not in sessions]:
            del totals[stale]
        logger.debug("opened debug session %s", session_id)
        return _payload(session_id, debugger)

    @app.get("/api/debug/{session_id}", response_model=DebugPayload)
    def get_session(session_id: str) -> DebugPayload:
        return _payload(session_id, _debugger(session_id))

    @app.post("/api/debug/{session_id}/{action}", response_model=DebugPayload)
    def act(session_id: str, action: DebugAction) -> DebugPayload:
        debugger = _debugger(session_id)
        handlers: Dict[DebugAction, Callable[[], Pause]] = {
            DebugAction.STEP: debugger.step,
            DebugAction.NEXT: debugger.step_over,
            DebugAction.FINISH: debugger.step_out,
            DebugAction.CONTINUE: debugger.resume,
            DebugAction.RESTART: debugger.restart,
        }
        try:
            handlers[action]()
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return _payload(session_id, debugger)

    @app.put("/api/debug/{session_id}/breakpoints/{position}", response_model=DebugPayload)
    def set_breakpoint(session_id: str, position: int) -> DebugPayload:
        debugger = _debugger(session_id)
        try:
            debugger.add_breakpoint(position)
        except ValueError as exc:
            raise _unprocessable(str(exc)) from exc
        return _payload(session_id, debugger)

    @app.delete("/api/debug/{session_id}/breakpoints/{position}", response_model=DebugPayload)
    def clear_breakpoint(session_id: str, position: int) -> DebugPayload:
        debugger = _debugger(session_id)
        if not debugger.remove_breakpoint(position):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No breakpoint at position {position}",
            )
        return _payload(session_id, debugger)

    @app.delete("/api/debug/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    def close_session(session_id: str) -> Response:
        totals.pop(session_id, None)
        if not sessions.close(session_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown session id: {session_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["RUN_STEP_LIMIT", "count_steps", "create_app"]
