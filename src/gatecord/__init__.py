"""
Gatecord - Discord bot built around a gated command dispatch pipeline

Core Components:

- **Dispatch**: resolves prefix, mention and no-prefix invocations as well as
  application-command interactions, runs the ordered authorization gate chain
  and the cooldown throttle, and reports failures to the invoker and to an
  operations channel
- **Command Registry**: command modules discovered under ``gatecord.commands``
  with per-command hot reload
- **Entitlements**: time-bounded or permanent premium grants for users and
  guilds, with lazy expiry and a periodic sweep
- **Settings**: per-guild prefixes, per-user no-prefix grants and blacklists,
  persisted in SQLite

Usage:
    from gatecord.main import main
    main()
"""
