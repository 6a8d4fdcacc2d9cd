"""
Configuration management for Gatecord.

- **app_configuration.py**: YAML configuration loader for global settings
  (default prefix, operator ids, operations channels, denial-notice
  probabilities, entitlement defaults and sweep interval, database path).
  Falls back to defaults on a missing or malformed config file.

The Discord token is not part of the YAML file; it is read from the
``DISCORD_BOT_TOKEN`` environment variable (``.env`` supported).
"""
