"""Built-in commands.

Every public module in this package is a command: it exposes
``build_command() -> CommandDescriptor`` and is discovered and (re)loaded by
the command registry. Modules whose name starts with an underscore are
helpers and are skipped by discovery.
"""
