import sys
import textwrap
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from gatecord.datatypes.command_datatypes import (
    CommandDescriptor,
    InteractionOption,
    InteractionSchema,
)
from gatecord.dispatch.registry import CommandRegistry, discover_command_modules


def command_module(name, *, aliases=(), interaction=None, description=""):
    descriptor = CommandDescriptor(
        name=name,
        body=AsyncMock(),
        description=description,
        aliases=frozenset(aliases),
        interaction=interaction,
    )
    return SimpleNamespace(build_command=lambda: descriptor)


def broken_module(message="boom"):
    def build_command():
        raise RuntimeError(message)

    return SimpleNamespace(build_command=build_command)


class FakeLoader:
    """Serves command modules from a dict; tests swap entries to simulate edits."""

    def __init__(self, modules):
        self.modules = dict(modules)
        self.calls = []

    def __call__(self, module_name, reload):
        self.calls.append((module_name, reload))
        return self.modules[module_name]


def make_registry(modules):
    loader = FakeLoader(modules)
    registry = CommandRegistry(list(modules), loader=loader)
    return registry, loader


def test_load_all_indexes_names_and_aliases():
    registry, _ = make_registry(
        {
            "cmds.ping": command_module("ping"),
            "cmds.prefix": command_module("prefix", aliases={"setprefix"}),
        }
    )

    result = registry.load_all()

    assert result.success
    assert result.message == "Loaded 2 command(s)."
    assert registry.names() == ["ping", "prefix"]
    assert registry.lookup("PING").name == "ping"
    assert registry.lookup("setprefix").name == "prefix"
    assert "setprefix" in registry
    assert registry.lookup("missing") is None
    assert len(registry) == 2


def test_load_all_skips_broken_modules():
    registry, _ = make_registry(
        {
            "cmds.ping": command_module("ping"),
            "cmds.bad": broken_module(),
        }
    )

    result = registry.load_all()

    assert not result.success
    assert result.failed == ("cmds.bad",)
    assert result.message == "Loaded 1 command(s), 1 failed."
    assert "boom" in result.error
    assert registry.names() == ["ping"]


def test_reload_swaps_in_new_descriptor():
    registry, loader = make_registry({"cmds.ping": command_module("ping", description="old")})
    registry.load_all()
    before = registry.lookup("ping")

    loader.modules["cmds.ping"] = command_module("ping", description="new")
    result = registry.reload("ping")

    assert result.success
    assert result.message == "Command `ping` reloaded successfully."
    assert registry.lookup("ping").description == "new"
    assert before.description == "old"
    assert loader.calls[-1] == ("cmds.ping", True)


def test_failed_reload_keeps_previous_descriptor():
    registry, loader = make_registry({"cmds.ping": command_module("ping", description="old")})
    registry.load_all()

    loader.modules["cmds.ping"] = broken_module("syntax is hard")
    result = registry.reload("ping")

    assert not result.success
    assert result.message.startswith("Failed to load `ping`")
    assert "Traceback" in result.error
    assert "syntax is hard" in result.error
    assert registry.lookup("ping").description == "old"


def test_reload_by_alias_targets_canonical_command():
    registry, loader = make_registry({"cmds.prefix": command_module("prefix", aliases={"setprefix"})})
    registry.load_all()

    result = registry.reload("setprefix")

    assert result.success
    assert result.loaded == ("prefix",)


def test_reload_unknown_command():
    registry, _ = make_registry({"cmds.ping": command_module("ping")})
    registry.load_all()

    result = registry.reload("nope")

    assert not result.success
    assert result.message == "Command `nope` not found."
    assert result.error is None


def test_reload_rejects_rename():
    registry, loader = make_registry({"cmds.ping": command_module("ping")})
    registry.load_all()

    loader.modules["cmds.ping"] = command_module("pong")
    result = registry.reload("ping")

    assert not result.success
    assert "renaming" in result.message
    assert registry.lookup("ping") is not None
    assert registry.lookup("pong") is None


def test_reload_rejects_alias_collision_and_keeps_old_aliases():
    registry, loader = make_registry(
        {
            "cmds.ping": command_module("ping", aliases={"p"}),
            "cmds.prefix": command_module("prefix"),
        }
    )
    registry.load_all()

    loader.modules["cmds.ping"] = command_module("ping", aliases={"prefix"})
    result = registry.reload("ping")

    assert not result.success
    assert "collides" in result.message
    assert registry.lookup("p").name == "ping"
    assert registry.lookup("prefix").name == "prefix"


def test_module_without_build_command_fails():
    registry, _ = make_registry({"cmds.empty": SimpleNamespace()})

    result = registry.load_all()

    assert not result.success
    assert "build_command" in result.error
    assert len(registry) == 0


def test_build_command_must_return_descriptor():
    registry, _ = make_registry({"cmds.odd": SimpleNamespace(build_command=lambda: "ping")})

    result = registry.load_all()

    assert not result.success
    assert "returned str" in result.error


def test_reload_all_reports_counts():
    registry, loader = make_registry(
        {
            "cmds.ping": command_module("ping"),
            "cmds.prefix": command_module("prefix"),
        }
    )
    registry.load_all()

    loader.modules["cmds.prefix"] = broken_module()
    result = registry.reload_all()

    assert not result.success
    assert result.message == "Reloaded 1 command(s), 1 failed."
    assert result.failed == ("prefix",)
    assert result.error.startswith("prefix: Failed to load `prefix`")
    assert registry.lookup("prefix") is not None


def test_interaction_lookup_and_schema_projection():
    registry, _ = make_registry(
        {
            "cmds.ping": command_module("ping", interaction=InteractionSchema(("ping",), "Check latency.")),
            "cmds.prefix": command_module(
                "prefix",
                interaction=InteractionSchema(
                    ("settings", "prefix"),
                    "View or change the prefix.",
                    (InteractionOption("newprefix", "New prefix", max_length=5),),
                ),
            ),
            "cmds.blacklist": command_module("blacklist"),
        }
    )
    registry.load_all()

    assert registry.lookup_interaction(("settings", "prefix")).name == "prefix"
    assert registry.lookup_interaction(("settings",)) is None

    schemas = registry.list_interaction_schemas()

    assert [schema["name"] for schema in schemas] == ["ping", "settings"]
    assert schemas[0] == {"name": "ping", "description": "Check latency.", "type": 1, "options": []}
    settings = schemas[1]
    assert settings["description"] == "Settings commands"
    assert settings["options"] == [
        {
            "name": "prefix",
            "description": "View or change the prefix.",
            "type": 1,
            "options": [
                {
                    "name": "newprefix",
                    "description": "New prefix",
                    "type": 3,
                    "required": False,
                    "max_length": 5,
                }
            ],
        }
    ]


def test_conflicting_interaction_paths_are_rejected():
    registry, _ = make_registry(
        {
            "cmds.a": command_module("settings", interaction=InteractionSchema(("settings",), "Top level.")),
            "cmds.b": command_module("prefix", interaction=InteractionSchema(("settings", "prefix"), "Sub.")),
        }
    )

    result = registry.load_all()

    assert result.failed == ("cmds.b",)
    assert "conflicts" in result.error


@pytest.mark.parametrize("path", [(), ("a", "b", "c")])
def test_interaction_path_length_is_validated(path):
    registry, _ = make_registry({"cmds.x": command_module("x", interaction=InteractionSchema(path, "X."))})

    result = registry.load_all()

    assert not result.success
    assert "one or two parts" in result.error


def test_bundled_commands_are_discovered():
    modules = discover_command_modules()

    assert "gatecord.commands.ping" in modules
    assert "gatecord.commands.prefix" in modules
    assert "gatecord.commands._arguments" not in modules


def test_bundled_commands_load():
    registry = CommandRegistry()

    result = registry.load_all()

    assert result.success, result.error
    assert {"ping", "prefix", "premium", "reload", "blacklist", "noprefix", "updateslash"} <= set(registry.names())
    assert registry.lookup_interaction(("settings", "prefix")).name == "prefix"


# ----------------------------------------------------------------------
# Real loader against command files on disk
# ----------------------------------------------------------------------

HELLO_SOURCE = """
from gatecord.datatypes.command_datatypes import CommandDescriptor


def greeting():
    return {greeting!r}


async def hello(ctx):
    return greeting()


def build_command():
    {build_prefix}return CommandDescriptor(name="hello", body=hello)
"""


@pytest.fixture
def disk_commands(tmp_path, monkeypatch):
    """A throwaway ``diskcmds`` package whose ``hello`` command can be rewritten."""
    package = tmp_path / "diskcmds"
    package.mkdir()
    (package / "__init__.py").write_text("")
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setattr(sys, "dont_write_bytecode", True)

    def write_hello(greeting, *, broken=False):
        build_prefix = 'raise RuntimeError("half-edited")\n    ' if broken else ""
        source = HELLO_SOURCE.format(greeting=greeting, build_prefix=build_prefix)
        (package / "hello.py").write_text(textwrap.dedent(source))

    yield write_hello

    for name in [name for name in sys.modules if name == "diskcmds" or name.startswith("diskcmds.")]:
        del sys.modules[name]


@pytest.mark.asyncio
async def test_failed_reload_leaves_previous_code_running(disk_commands):
    disk_commands("old")
    registry = CommandRegistry(package="diskcmds")
    assert registry.load_all().success
    before = registry.lookup("hello")
    installed = sys.modules["diskcmds.hello"]

    disk_commands("new from an edit that does not build", broken=True)
    result = registry.reload("hello")

    assert not result.success
    assert "half-edited" in result.error
    assert registry.lookup("hello") is before
    assert sys.modules["diskcmds.hello"] is installed
    assert await before.body(None) == "old"


@pytest.mark.asyncio
async def test_successful_reload_installs_the_new_module(disk_commands):
    disk_commands("old")
    registry = CommandRegistry(package="diskcmds")
    registry.load_all()
    before = registry.lookup("hello")

    disk_commands("fixed after the edit")
    result = registry.reload("hello")

    assert result.success, result.error
    after = registry.lookup("hello")
    assert after is not before
    assert await after.body(None) == "fixed after the edit"
    assert sys.modules["diskcmds.hello"].greeting() == "fixed after the edit"
    assert await before.body(None) == "old"
