"""Pydantic schemas for SiteAgent conversation, tool-call and event contracts."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# The single tool exposed to the model
TOOL_NAME = "executeCommand"


class Role(str, Enum):
    """Conversation roles understood by the model API."""

    USER = "user"
    MODEL = "model"


class OutcomeStatus(str, Enum):
    """Tool execution status."""

    SUCCESS = "success"
    FAILURE = "failure"


class EventType(str, Enum):
    """Event types streamed to the client, by wire value."""

    COMMAND_ISSUED = "command"
    COMMAND_RESULT = "command-result"
    FILE_WRITTEN = "file-update"
    COMPLETED = "done"
    ERROR = "error"


class RunStatus(str, Enum):
    """Terminal state of an agent run."""

    COMPLETED = "completed"
    FAILED = "failed"


# --- Conversation ---


class FunctionCall(BaseModel):
    """Tool call as emitted by the model."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    # Opaque reasoning token from thinking models, echoed on the enclosing part
    thought_signature: str | None = Field(default=None, exclude=True)


class FunctionResponse(BaseModel):
    """Tool result as sent back to the model."""

    name: str
    response: dict[str, Any]


class Part(BaseModel):
    """One part of a turn: plain text, a tool call or a tool result."""

    model_config = ConfigDict(populate_by_name=True)

    text: str | None = None
    function_call: FunctionCall | None = Field(default=None, alias="functionCall")
    function_response: FunctionResponse | None = Field(
        default=None, alias="functionResponse"
    )
    thought_signature: str | None = Field(default=None, alias="thoughtSignature")


class ConversationTurn(BaseModel):
    """One entry in the ordered history sent to the model."""

    role: Role
    parts: list[Part]

    @classmethod
    def user_text(cls, text: str) -> ConversationTurn:
        return cls(role=Role.USER, parts=[Part(text=text)])

    @classmethod
    def model_text(cls, text: str) -> ConversationTurn:
        return cls(role=Role.MODEL, parts=[Part(text=text)])

    @classmethod
    def model_call(cls, call: FunctionCall) -> ConversationTurn:
        return cls(
            role=Role.MODEL,
            parts=[Part(function_call=call, thought_signature=call.thought_signature)],
        )

    def to_api(self) -> dict[str, Any]:
        """Serialize to the generateContent `contents` entry format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Tool calls ---


class ToolCallRequest(BaseModel):
    """Validated tool call request."""

    name: str
    arguments: dict[str, Any]

    @field_validator("arguments")
    @classmethod
    def _require_command(cls, value: dict[str, Any]) -> dict[str, Any]:
        command = value.get("command")
        if not isinstance(command, str) or not command.strip():
            raise ValueError("tool call requires a non-empty 'command' string")
        return value

    @property
    def command(self) -> str:
        return self.arguments["command"]

    @classmethod
    def from_function_call(cls, call: FunctionCall) -> ToolCallRequest:
        return cls(name=call.name, arguments=call.args)


class CommandOutcome(BaseModel):
    """Outcome of interpreting one command."""

    status: OutcomeStatus
    output: str = ""
    error: str | None = None
    error_kind: str | None = None
    written_path: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def success(cls, output: str, written_path: str | None = None) -> CommandOutcome:
        return cls(status=OutcomeStatus.SUCCESS, output=output, written_path=written_path)

    @classmethod
    def failure(cls, error_kind: str, error: str) -> CommandOutcome:
        return cls(status=OutcomeStatus.FAILURE, error=error, error_kind=error_kind)

    def describe(self) -> str:
        """Human-readable one-liner used for both the model and the client."""
        if self.written_path is not None:
            return f"Success: file written to {self.written_path}"
        if self.ok:
            return f"Success: {self.output} || Task executed completely"
        return f"Error ({self.error_kind}): {self.error}"


class ToolCallResult(BaseModel):
    """Result of one tool call, appended to history as the next user turn."""

    name: str
    outcome: CommandOutcome

    def to_turn(self) -> ConversationTurn:
        response = FunctionResponse(
            name=self.name,
            response={"result": self.outcome.describe()},
        )
        return ConversationTurn(role=Role.USER, parts=[Part(function_response=response)])


# --- Tagged commands ---


class FileWrite(BaseModel):
    """Heredoc write of `content` into `path`."""

    kind: Literal["file_write"] = "file_write"
    path: str
    content: str


class ShellInvocation(BaseModel):
    """Opaque command string for the shell."""

    kind: Literal["shell"] = "shell"
    text: str


Command = Union[FileWrite, ShellInvocation]


# --- Model responses ---


class ModelResponse(BaseModel):
    """Normalized generateContent reply."""

    text: str = ""
    function_calls: list[FunctionCall] = Field(default_factory=list)


# --- Events ---


class FileUpdate(BaseModel):
    """Payload of a file-update event."""

    path: str


class ExecutionEvent(BaseModel):
    """Progress event relayed to the client during a run."""

    type: EventType
    data: Union[str, FileUpdate]

    @classmethod
    def command_issued(cls, command: str) -> ExecutionEvent:
        return cls(type=EventType.COMMAND_ISSUED, data=command)

    @classmethod
    def command_result(cls, text: str) -> ExecutionEvent:
        return cls(type=EventType.COMMAND_RESULT, data=text)

    @classmethod
    def file_written(cls, path: str) -> ExecutionEvent:
        return cls(type=EventType.FILE_WRITTEN, data=FileUpdate(path=path))

    @classmethod
    def completed(cls, text: str) -> ExecutionEvent:
        return cls(type=EventType.COMPLETED, data=text)

    @classmethod
    def error(cls, message: str) -> ExecutionEvent:
        return cls(type=EventType.ERROR, data=message)

    def to_wire(self) -> str:
        """JSON text sent over the transport."""
        return json.dumps(self.model_dump(mode="json"))


# --- Run summary ---


class RunResult(BaseModel):
    """Summary of one agent run."""

    status: RunStatus
    history: list[ConversationTurn]
    final_text: str | None = None
    error: str | None = None


# --- HTTP ---


class HealthResponse(BaseModel):
    """Health check response."""

    server: Literal["healthy", "unhealthy"] = "healthy"
    model: str
    output_dir: str
    active_sessions: int = 0


class ErrorResponse(BaseModel):
    """Error response for failed requests."""

    detail: str
    error_code: str | None = None
