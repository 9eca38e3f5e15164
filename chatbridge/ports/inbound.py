"""Inbound port — platform-agnostic interaction events."""

from dataclasses import dataclass, field
from typing import Any, Dict, Protocol


class MissingParameterError(LookupError):
    """A parameter the registered schema marks as required was not delivered."""


class ReplyAlreadySentError(RuntimeError):
    """An interaction accepts exactly one reply."""


class ReplyChannel(Protocol):
    """Single-use reply handle supplied with every interaction."""

    async def send(self, content: str) -> None: ...


@dataclass
class InteractionEvent:
    command_name: str
    reply: ReplyChannel
    parameters: Dict[str, Any] = field(default_factory=dict)

    def require_string(self, name: str) -> str:
        """Return a required string parameter, raising if the platform omitted it."""
        if name not in self.parameters:
            raise MissingParameterError(
                f"'{self.command_name}' interaction is missing required parameter {name!r}"
            )
        value = self.parameters[name]
        if not isinstance(value, str):
            raise MissingParameterError(
                f"'{self.command_name}' parameter {name!r} is not a string: {type(value).__name__}"
            )
        return value
