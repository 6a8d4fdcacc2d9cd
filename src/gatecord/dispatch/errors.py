"""
Error taxonomy for command dispatch.

Every failure a dispatch can surface derives from :class:`DispatchError` so
the pipeline boundary can tell user mistakes and denials apart from real
faults. Anything else raised by a command body is treated as an execution
fault: logged, mirrored to the operations channel, and reported generically.
"""

from __future__ import annotations

from enum import Enum


class DispatchError(Exception):
    """Base class for errors the dispatch pipeline knows how to report."""


class ValidationError(DispatchError):
    """Malformed input from the invoker (bad duration, prefix too long, unknown target).

    Reported straight back to the invoker and never logged as a fault.
    """


class Gate(str, Enum):
    """Identifiers of the authorization gates, in evaluation order."""

    BLACKLIST = "blacklist"
    MAINTENANCE = "maintenance"
    OWNER_ONLY = "owner_only"
    CALLER_PERMISSIONS = "caller_permissions"
    AGENT_PERMISSIONS = "agent_permissions"
    ENTITLEMENT = "entitlement"
    COOLDOWN = "cooldown"
    VOICE = "voice"
    SAME_VOICE = "same_voice"


class AuthorizationDenied(DispatchError):
    """A gate rejected the dispatch.

    Attributes:
        gate: The gate that failed.
        title: Short heading for the user-facing notice.
        reason: The unmet requirement, phrased for the invoker.
        notice_rate: Probability in ``[0, 1]`` that the invoker is told at all,
            or ``None`` to always notify. Blacklist denials use this so repeat
            offenders do not get a reliable signal.
        retry_after: Seconds left on the cooldown, for cooldown denials.
    """

    def __init__(
        self,
        gate: Gate,
        title: str,
        reason: str,
        *,
        notice_rate: float | None = None,
        retry_after: int = 0,
    ) -> None:
        super().__init__(reason)
        self.gate = gate
        self.title = title
        self.reason = reason
        self.notice_rate = notice_rate
        self.retry_after = retry_after

    def __repr__(self) -> str:
        return f"AuthorizationDenied(gate={self.gate.value!r}, reason={self.reason!r})"


class ReloadFault(DispatchError):
    """A command module could not be (re)constructed or registered.

    Confined to the one command being loaded; the registry converts it into
    a failed reload result.
    """

    def __init__(self, command_name: str, message: str) -> None:
        super().__init__(message)
        self.command_name = command_name
