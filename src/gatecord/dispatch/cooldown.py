"""In-memory cooldown throttle keyed by (subject, command)."""

from __future__ import annotations

import math
from typing import Dict, Tuple

from gatecord.datatypes.command_datatypes import CommandDescriptor
from gatecord.util.clock import Clock, now_ms


class CooldownThrottle:
    """
    Last-use timestamps per (subject id, command name).

    State lives for the process lifetime only. ``set_cooldown`` must be called
    after every gate has passed, right before the command body runs, so a
    rejected dispatch never starts or refreshes a window.
    """

    def __init__(self, *, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._last_use: Dict[Tuple[int, str], int] = {}

    def check_cooldown(self, subject_id: int, descriptor: CommandDescriptor) -> int:
        """Seconds the subject still has to wait, or 0 if eligible."""
        seconds = descriptor.cooldown_seconds
        if seconds <= 0:
            return 0

        last_use = self._last_use.get((subject_id, descriptor.name))
        if last_use is None:
            return 0

        elapsed = self._clock() - last_use
        return max(math.ceil(seconds - elapsed / 1000), 0)

    def set_cooldown(self, subject_id: int, descriptor: CommandDescriptor) -> None:
        if descriptor.cooldown_seconds <= 0:
            return
        self._last_use[(subject_id, descriptor.name)] = self._clock()

    def clear(self) -> None:
        self._last_use.clear()

    def __len__(self) -> int:
        return len(self._last_use)
