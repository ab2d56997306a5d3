"""Agent loop: alternates model calls with executeCommand dispatches."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from pydantic import ValidationError

from siteagent.config import Settings, load_settings
from siteagent.executors.interpreter import CommandInterpreter
from siteagent.executors.shell_runner import truncate_output
from siteagent.prompt_engine import build_system_instruction, build_tools
from siteagent.schemas import (
    TOOL_NAME,
    ConversationTurn,
    ExecutionEvent,
    FunctionCall,
    RunResult,
    RunStatus,
    ToolCallRequest,
    ToolCallResult,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[ExecutionEvent], Awaitable[None]]


class TurnLimitExceeded(Exception):
    """Raised when a run reaches the configured maximum number of model calls."""

    pass


class ToolDispatchError(Exception):
    """Raised when the model requests an unknown tool or omits the command."""

    pass


async def deliver(emit: EventSink, event: ExecutionEvent) -> None:
    """Send an event; delivery is best-effort and never aborts the run."""
    try:
        await emit(event)
    except Exception as e:
        logger.warning(f"Dropped {event.type.value} event: {e}")


async def _dispatch(
    call: FunctionCall,
    interpreter: Callable,
    emit: EventSink,
    max_output_bytes: int,
) -> ToolCallResult:
    """Execute one tool call and mirror it to the event sink."""
    if call.name != TOOL_NAME:
        raise ToolDispatchError(f"Unknown tool requested: {call.name}")
    try:
        request = ToolCallRequest.from_function_call(call)
    except ValidationError as e:
        raise ToolDispatchError(f"Invalid arguments for {TOOL_NAME}: {e.errors()[0]['msg']}") from e

    await deliver(emit, ExecutionEvent.command_issued(request.command))

    # Blocking work runs off the event loop so other connections keep flowing
    outcome = await asyncio.to_thread(interpreter, request.command)

    if outcome.ok and outcome.written_path is not None:
        await deliver(emit, ExecutionEvent.file_written(outcome.written_path))
    else:
        await deliver(emit, ExecutionEvent.command_result(outcome.describe()))

    outcome = outcome.model_copy(
        update={"output": truncate_output(outcome.output, max_output_bytes)}
    )
    return ToolCallResult(name=request.name, outcome=outcome)


async def run_agent(
    problem: str,
    client,
    emit: EventSink,
    settings: Settings | None = None,
    interpreter: Callable | None = None,
) -> RunResult:
    """Drive one run from a problem statement to a final answer.

    Only the first tool call of a response is executed. Any exception ends
    the run with a single error event; nothing propagates to the caller.

    Args:
        problem: The user's problem statement
        client: Object with an async `generate_content(history, system_instruction, tools)`
        emit: Async callback receiving ExecutionEvents in order
        settings: Runtime settings (loaded from the environment if omitted)
        interpreter: Callable mapping a command string to a CommandOutcome

    Returns:
        RunResult with terminal status and the run's history
    """
    settings = settings or load_settings()
    interpreter = interpreter or CommandInterpreter.from_settings(settings)
    system_instruction = build_system_instruction(str(settings.output_dir))
    tools = build_tools()

    history = [ConversationTurn.user_text(problem)]
    model_calls = 0

    try:
        while True:
            if settings.max_turns and model_calls >= settings.max_turns:
                raise TurnLimitExceeded(
                    f"Stopped after {settings.max_turns} model calls without a final answer"
                )
            model_calls += 1

            response = await client.generate_content(history, system_instruction, tools)

            if not response.function_calls:
                history.append(ConversationTurn.model_text(response.text))
                await deliver(emit, ExecutionEvent.completed(response.text))
                logger.info(f"Run completed after {model_calls} model calls")
                return RunResult(
                    status=RunStatus.COMPLETED,
                    history=history,
                    final_text=response.text,
                )

            if len(response.function_calls) > 1:
                logger.warning(
                    f"Model returned {len(response.function_calls)} tool calls, "
                    "executing only the first"
                )

            call = response.function_calls[0]
            result = await _dispatch(call, interpreter, emit, settings.max_output_bytes)

            history.append(ConversationTurn.model_call(call))
            history.append(result.to_turn())

    except Exception as e:
        logger.error(f"Error during agent execution: {e}", exc_info=True)
        message = f"An error occurred on the server: {e}"
        await deliver(emit, ExecutionEvent.error(message))
        return RunResult(status=RunStatus.FAILED, history=history, error=message)
