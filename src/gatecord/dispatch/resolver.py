"""
Request resolution: raw message text or interaction payload to a
:class:`ParsedInvocation`.

Text resolution order (first match wins):
    a. agent mention (``<@id>`` / ``<@!id>``) followed by whitespace
    b. the guild's prefix
    c. the global default prefix
    d. bare text, only for callers holding a no-prefix grant

A guild prefix shadows the default one: the default applies only to guilds
without a prefix of their own, which the caller signals with an empty
``guild_prefix``.

Both functions are pure; prefix and grant state are passed in.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from gatecord.datatypes.command_datatypes import DEBUG_FLAGS, OptionType, ParsedInvocation

_FLAG_MARKER = "--"
_SUBCOMMAND_TYPES = (int(OptionType.SUB_COMMAND), int(OptionType.SUB_COMMAND_GROUP))


def _mention_pattern(agent_id: int, *, bare: bool) -> re.Pattern[str]:
    tail = r"\s*$" if bare else r"\s+"
    return re.compile(rf"^<@!?{agent_id}>{tail}")


def is_bare_mention(content: str, agent_id: int) -> bool:
    """True when the message is nothing but a mention of the agent."""
    return bool(_mention_pattern(agent_id, bare=True).match(content.strip()))


def split_flags(tokens: Iterable[str]) -> Tuple[Tuple[str, ...], frozenset]:
    """Separate recognized ``--flag`` tokens from positional arguments."""
    args: List[str] = []
    flags = set()
    for token in tokens:
        if token.startswith(_FLAG_MARKER):
            flag = token[len(_FLAG_MARKER):].lower()
            if flag in DEBUG_FLAGS:
                flags.add(flag)
                continue
        args.append(token)
    return tuple(args), frozenset(flags)


def resolve_text(
    content: str,
    *,
    guild_prefix: str,
    default_prefix: str,
    agent_id: int,
    has_no_prefix: bool = False,
) -> Optional[ParsedInvocation]:
    """Resolve message text to an invocation, or ``None`` if it is not one."""
    text = content.strip()
    command_text: Optional[str] = None
    explicit = True

    mention = _mention_pattern(agent_id, bare=False).match(text)
    if mention:
        command_text = text[mention.end():]
    elif guild_prefix and text.startswith(guild_prefix):
        command_text = text[len(guild_prefix):]
    elif not guild_prefix and default_prefix and text.startswith(default_prefix):
        command_text = text[len(default_prefix):]
    elif has_no_prefix:
        command_text = text
        explicit = False

    if command_text is None:
        return None

    tokens = command_text.split()
    if not tokens:
        return None

    args, flags = split_flags(tokens[1:])
    return ParsedInvocation(
        command_name=tokens[0].casefold(),
        args=args,
        flags=flags,
        is_explicit=explicit,
    )


def _walk_options(options: List[Dict[str, Any]], path: List[str]) -> Mapping[str, Any]:
    """Descend through subcommand groups and subcommands, collecting leaf values."""
    values: Dict[str, Any] = {}
    for option in options or []:
        if option.get("type") in _SUBCOMMAND_TYPES:
            path.append(str(option["name"]).casefold())
            return _walk_options(option.get("options") or [], path)
        values[option["name"]] = option.get("value")
    return values


def resolve_interaction(data: Mapping[str, Any]) -> ParsedInvocation:
    """Resolve an application-command payload (``interaction.data``).

    The name path is the command name plus any subcommand group and
    subcommand names; typed option values are kept as-is.
    """
    path = [str(data.get("name", "")).casefold()]
    options = _walk_options(list(data.get("options") or []), path)
    return ParsedInvocation(
        command_name=" ".join(path),
        args=tuple(str(value) for value in options.values() if value is not None),
        flags=frozenset(),
        is_explicit=True,
        interaction_path=tuple(path),
        options=MappingProxyType(dict(options)),
    )
