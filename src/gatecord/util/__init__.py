"""
Shared utilities for Gatecord.

- **logger.py**: Session-wide logging setup (prompt_toolkit console handler,
  rotating log file, global exception hook).
- **durations.py**: Parsing and formatting of the ``30d`` / ``12h`` / ``perm``
  duration grammar used by the administration commands.
- **clock.py**: Epoch-millisecond clock, injectable into the services.
"""
