"""
Command descriptors and normalized invocations.

A :class:`CommandDescriptor` is the immutable record of one command: its
name, aliases, declared requirements, optional interaction (slash) schema and
the async body that runs it. Descriptors are built by command modules through
``build_command()`` and held by the command registry, which replaces them
wholesale on reload.

A :class:`ParsedInvocation` is what the request resolver produces from either
a text message or an application-command interaction, so both surfaces share
the same gate chain and cooldown handling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from gatecord.dispatch.context import CommandContext

CommandBody = Callable[["CommandContext"], Awaitable[None]]

DEBUG_FLAGS: FrozenSet[str] = frozenset({"verbose", "debug", "trace", "timing", "silent"})


@dataclass(frozen=True, slots=True)
class CommandRequirements:
    """Requirements a command declares; each maps to one authorization gate.

    Permission names are ``discord.Permissions`` attribute names such as
    ``"manage_guild"`` or ``"send_messages"``.
    """

    owner_only: bool = False
    maintenance: bool = False
    caller_permissions: FrozenSet[str] = frozenset()
    agent_permissions: FrozenSet[str] = frozenset()
    user_entitlement: bool = False
    guild_entitlement: bool = False
    any_entitlement: bool = False
    cooldown_seconds: int = 0
    voice_required: bool = False
    same_voice_required: bool = False


class OptionType(IntEnum):
    """Application command option types used by the interaction schemas."""

    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    NUMBER = 10


@dataclass(frozen=True, slots=True)
class InteractionOption:
    """One typed option of an interaction command."""

    name: str
    description: str
    type: OptionType = OptionType.STRING
    required: bool = False
    max_length: Optional[int] = None
    choices: Tuple[str, ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "type": int(self.type),
            "required": self.required,
        }
        if self.max_length is not None:
            payload["max_length"] = self.max_length
        if self.choices:
            payload["choices"] = [{"name": choice, "value": choice} for choice in self.choices]
        return payload


@dataclass(frozen=True, slots=True)
class InteractionSchema:
    """Interaction surface of a command.

    ``path`` is ``("ping",)`` for a top-level command or
    ``("settings", "prefix")`` for a subcommand of a shared parent.
    """

    path: Tuple[str, ...]
    description: str
    options: Tuple[InteractionOption, ...] = ()

    @property
    def key(self) -> str:
        return " ".join(self.path)


@dataclass(frozen=True, slots=True)
class CommandDescriptor:
    """Immutable metadata, requirements and body of one command."""

    name: str
    body: CommandBody
    description: str = ""
    usage: str = ""
    category: str = "general"
    aliases: FrozenSet[str] = frozenset()
    requirements: CommandRequirements = field(default_factory=CommandRequirements)
    interaction: Optional[InteractionSchema] = None

    @property
    def cooldown_seconds(self) -> int:
        return self.requirements.cooldown_seconds


@dataclass(frozen=True, slots=True)
class ParsedInvocation:
    """Normalized request shared by the message and interaction surfaces.

    Attributes:
        command_name: Case-folded command name (for interactions, the joined path).
        args: Positional arguments with debug flags removed.
        flags: Recognized debug flags (``verbose``, ``debug``, ``trace``, ``timing``, ``silent``).
        is_explicit: False only for bare-text invocations through a no-prefix grant.
        interaction_path: Name path of an interaction invocation, ``None`` for text.
        options: Typed option values of an interaction invocation.
    """

    command_name: str
    args: Tuple[str, ...] = ()
    flags: FrozenSet[str] = frozenset()
    is_explicit: bool = True
    interaction_path: Optional[Tuple[str, ...]] = None
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_interaction(self) -> bool:
        return self.interaction_path is not None


@dataclass(frozen=True, slots=True)
class ReloadResult:
    """Outcome of a registry load or reload, reported to the operator."""

    success: bool
    message: str
    error: Optional[str] = None
    loaded: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error:
            result["error"] = self.error
        return result


def collect_failures(results: Mapping[str, ReloadResult]) -> List[str]:
    """Return ``name: message`` lines for the failed entries of a batch."""
    return [f"{name}: {result.message}" for name, result in results.items() if not result.success]
