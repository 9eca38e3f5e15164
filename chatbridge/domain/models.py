"""Domain data models — pure Python dataclasses."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

_COMMAND_NAME_RE = re.compile(r"^[a-z0-9_-]{1,32}$")


class ParameterType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    NUMBER = "number"


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    type: ParameterType
    required: bool
    description: str


@dataclass(frozen=True)
class CommandDefinition:
    """A slash command as registered on the platform."""

    name: str  # lowercase token, unique per registry
    description: str
    parameters: Tuple[ParameterSpec, ...] = ()

    def __post_init__(self):
        if not _COMMAND_NAME_RE.match(self.name):
            raise ValueError(f"Invalid command name: {self.name!r}")


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass
class CompletionRequest:
    model: str
    prompt: str
    max_tokens: int = 128
    temperature: float = 0.9

    def __post_init__(self):
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive: {self.max_tokens}")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature out of range [0, 2]: {self.temperature}")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "prompt": self.prompt,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }


@dataclass
class CompletionResult:
    """Outcome of one completion call. Check ``success`` before reading ``text``."""

    success: bool
    text: str = ""
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, text: str) -> "CompletionResult":
        return cls(success=True, text=text)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "CompletionResult":
        return cls(success=False, error=error, error_kind=kind)


@dataclass
class CompletionChoice:
    text: str


@dataclass
class CompletionResponse:
    """Typed view of the completion API response body."""

    choices: List[CompletionChoice] = field(default_factory=list)

    @property
    def first_text(self) -> str:
        return self.choices[0].text
