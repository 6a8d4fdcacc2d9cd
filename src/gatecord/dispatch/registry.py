"""
Command registry with per-command hot reload.

Commands live in modules under ``gatecord.commands``; each module exposes
``build_command() -> CommandDescriptor``. The registry keeps an immutable
snapshot of descriptors, the alias index and the interaction index. Every
load or reload builds a new snapshot and swaps it in with one assignment, so
a dispatch that already looked up a descriptor keeps using it.

A module that fails to import, build or validate never touches the active
snapshot or the module registered in ``sys.modules``. The previous descriptor
stays registered, still bound to the code it was built from, and the failure
comes back as a :class:`ReloadResult` carrying the captured traceback.
"""

from __future__ import annotations

import importlib
import importlib.util
import pkgutil
import sys
import traceback
from dataclasses import dataclass, field
from types import MappingProxyType, ModuleType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from gatecord.datatypes.command_datatypes import CommandDescriptor, ReloadResult, collect_failures
from gatecord.dispatch.errors import ReloadFault
from gatecord.util.logger import get_logger

logger = get_logger("command_registry")

COMMANDS_PACKAGE = "gatecord.commands"

CommandLoader = Callable[[str, bool], Any]
"""``(module_name, reload) -> module`` exposing ``build_command``."""


def discover_command_modules(package: str = COMMANDS_PACKAGE) -> List[str]:
    """Fully-qualified names of the command modules in ``package``."""
    pkg = importlib.import_module(package)
    return sorted(
        f"{package}.{info.name}"
        for info in pkgutil.iter_modules(pkg.__path__)
        if not info.ispkg and not info.name.startswith("_")
    )


def load_command_module(module_name: str, reload: bool = False) -> ModuleType:
    """Import a command module.

    With ``reload`` the source is executed into a fresh module object that is
    not registered in ``sys.modules``. The registered module, and every
    descriptor built from it, stays untouched until :func:`install_command_module`
    is called for the replacement.
    """
    current = sys.modules.get(module_name)
    if not reload or current is None:
        return importlib.import_module(module_name)

    importlib.invalidate_caches()
    spec = importlib.util.spec_from_file_location(module_name, current.__spec__.origin)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot locate the source of {module_name}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def install_command_module(module_name: str, module: Any) -> None:
    """Publish a reloaded module; loaders serving non-module objects are left alone."""
    if isinstance(module, ModuleType):
        sys.modules[module_name] = module


@dataclass(frozen=True)
class _Snapshot:
    commands: Mapping[str, CommandDescriptor] = field(default_factory=lambda: MappingProxyType({}))
    aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    modules: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    interactions: Mapping[Tuple[str, ...], str] = field(default_factory=lambda: MappingProxyType({}))


class CommandRegistry:
    """Active command set, alias index and hot-reload entry points."""

    def __init__(
        self,
        module_names: Optional[Sequence[str]] = None,
        *,
        loader: CommandLoader = load_command_module,
        package: str = COMMANDS_PACKAGE,
    ) -> None:
        self._module_names = list(module_names) if module_names is not None else None
        self._loader = loader
        self._package = package
        self._snapshot = _Snapshot()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> Optional[CommandDescriptor]:
        """Find a command by canonical name or alias (case-insensitive)."""
        snapshot = self._snapshot
        key = name.casefold()
        descriptor = snapshot.commands.get(key)
        if descriptor is None and key in snapshot.aliases:
            descriptor = snapshot.commands.get(snapshot.aliases[key])
        return descriptor

    def lookup_interaction(self, path: Sequence[str]) -> Optional[CommandDescriptor]:
        snapshot = self._snapshot
        name = snapshot.interactions.get(tuple(part.casefold() for part in path))
        return snapshot.commands.get(name) if name is not None else None

    def names(self) -> List[str]:
        return sorted(self._snapshot.commands)

    def descriptors(self) -> List[CommandDescriptor]:
        snapshot = self._snapshot
        return [snapshot.commands[name] for name in sorted(snapshot.commands)]

    def __len__(self) -> int:
        return len(self._snapshot.commands)

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _discover(self) -> List[str]:
        if self._module_names is not None:
            return list(self._module_names)
        return discover_command_modules(self._package)

    def load_all(self) -> ReloadResult:
        """Build the registry from scratch; broken modules are skipped and reported."""
        snapshot = _Snapshot()
        results: Dict[str, ReloadResult] = {}

        for module_name in self._discover():
            try:
                descriptor, _ = self._build(module_name, reload=False)
                snapshot = self._with_descriptor(snapshot, descriptor, module_name)
            except Exception as exc:
                results[module_name] = self._failure(module_name, exc)
                continue
            results[descriptor.name] = ReloadResult(True, f"Loaded `{descriptor.name}`.")

        self._snapshot = snapshot
        result = self._summarize("Loaded", results)
        logger.info("[REGISTRY] %s", result.message)
        return result

    def reload(self, name: str) -> ReloadResult:
        """Re-import and rebuild one command, addressed by name or alias."""
        snapshot = self._snapshot
        key = name.casefold()
        canonical = key if key in snapshot.commands else snapshot.aliases.get(key)
        if canonical is None:
            return ReloadResult(False, f"Command `{name}` not found.")

        module_name = snapshot.modules[canonical]
        try:
            descriptor, module = self._build(module_name, reload=True)
            if descriptor.name.casefold() != canonical:
                raise ReloadFault(
                    canonical,
                    f"Module {module_name} now builds `{descriptor.name}`; renaming a command needs a full restart.",
                )
            new_snapshot = self._with_descriptor(snapshot, descriptor, module_name, replacing=canonical)
        except Exception as exc:
            return self._failure(canonical, exc)

        install_command_module(module_name, module)
        self._snapshot = new_snapshot
        logger.info("[REGISTRY] Reloaded command %s", canonical)
        return ReloadResult(True, f"Command `{canonical}` reloaded successfully.", loaded=(canonical,))

    def reload_all(self) -> ReloadResult:
        """Reload every registered command in turn; one failure does not stop the rest."""
        results: Dict[str, ReloadResult] = {}
        for name in self.names():
            results[name] = self.reload(name)

        result = self._summarize("Reloaded", results)
        logger.info("[REGISTRY] %s", result.message)
        return result

    # ------------------------------------------------------------------
    # Interaction schemas
    # ------------------------------------------------------------------

    def list_interaction_schemas(self) -> List[Dict[str, Any]]:
        """Project commands with an interaction surface to application-command JSON.

        Two-part paths become subcommands of a shared parent command.
        """
        top_level: Dict[str, Dict[str, Any]] = {}
        for descriptor in self.descriptors():
            schema = descriptor.interaction
            if schema is None:
                continue

            options = [option.to_payload() for option in schema.options]
            if len(schema.path) == 1:
                top_level[schema.path[0]] = {
                    "name": schema.path[0],
                    "description": schema.description,
                    "type": 1,
                    "options": options,
                }
                continue

            parent_name, sub_name = schema.path
            parent = top_level.setdefault(
                parent_name,
                {"name": parent_name, "description": f"{parent_name.title()} commands", "type": 1, "options": []},
            )
            parent["options"].append(
                {"name": sub_name, "description": schema.description, "type": 1, "options": options}
            )

        return [top_level[name] for name in sorted(top_level)]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build(self, module_name: str, *, reload: bool) -> Tuple[CommandDescriptor, Any]:
        module = self._loader(module_name, reload)
        build = getattr(module, "build_command", None)
        if not callable(build):
            raise ReloadFault(module_name, f"Module {module_name} has no build_command()")

        descriptor = build()
        if not isinstance(descriptor, CommandDescriptor):
            raise ReloadFault(module_name, f"build_command() in {module_name} returned {type(descriptor).__name__}")
        return descriptor, module

    @staticmethod
    def _with_descriptor(
        snapshot: _Snapshot,
        descriptor: CommandDescriptor,
        module_name: str,
        replacing: Optional[str] = None,
    ) -> _Snapshot:
        """Validate ``descriptor`` against ``snapshot`` and return a copy including it."""
        name = descriptor.name.casefold()
        commands = {key: value for key, value in snapshot.commands.items() if key != replacing}
        aliases = {alias: owner for alias, owner in snapshot.aliases.items() if owner != replacing}
        interactions = {path: owner for path, owner in snapshot.interactions.items() if owner != replacing}
        modules = dict(snapshot.modules)

        if name in commands or name in aliases:
            raise ReloadFault(name, f"Command name `{name}` is already registered")

        for alias in descriptor.aliases:
            key = alias.casefold()
            if key == name:
                continue
            if key in commands:
                raise ReloadFault(name, f"Alias `{key}` collides with command `{key}`")
            if key in aliases:
                raise ReloadFault(name, f"Alias `{key}` is already used by `{aliases[key]}`")
            aliases[key] = name

        if descriptor.interaction is not None:
            path = tuple(part.casefold() for part in descriptor.interaction.path)
            if len(path) not in (1, 2):
                raise ReloadFault(name, f"Interaction path {path} must have one or two parts")
            for existing in interactions:
                if existing == path or existing[:1] == path or path[:1] == existing:
                    raise ReloadFault(
                        name, f"Interaction `{' '.join(path)}` conflicts with `{' '.join(existing)}`"
                    )
            interactions[path] = name

        commands[name] = descriptor
        modules[name] = module_name
        return _Snapshot(
            commands=MappingProxyType(commands),
            aliases=MappingProxyType(aliases),
            modules=MappingProxyType(modules),
            interactions=MappingProxyType(interactions),
        )

    @staticmethod
    def _failure(name: str, exc: Exception) -> ReloadResult:
        logger.error("[REGISTRY] Failed to load %s: %s", name, exc, exc_info=exc)
        return ReloadResult(
            False,
            f"Failed to load `{name}`: {exc}",
            error=traceback.format_exc(),
            failed=(name,),
        )

    @staticmethod
    def _summarize(verb: str, results: Mapping[str, ReloadResult]) -> ReloadResult:
        loaded = tuple(name for name, result in results.items() if result.success)
        failed = tuple(name for name, result in results.items() if not result.success)
        if not failed:
            return ReloadResult(True, f"{verb} {len(loaded)} command(s).", loaded=loaded)
        return ReloadResult(
            False,
            f"{verb} {len(loaded)} command(s), {len(failed)} failed.",
            error="\n".join(collect_failures(results)),
            loaded=loaded,
            failed=failed,
        )
