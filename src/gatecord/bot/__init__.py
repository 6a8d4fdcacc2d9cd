"""
py-cord integration for Gatecord.

- **cogs/dispatch_listener.py**: routes messages and application-command
  interactions into the dispatch pipeline
- **cogs/events_listener.py**: lifecycle (on_ready), presence and a summary of
  the loaded commands
- **cogs/entitlement_sweep.py**: periodic removal of expired premium grants
"""
