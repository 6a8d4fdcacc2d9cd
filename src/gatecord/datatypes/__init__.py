"""
Plain data types shared across Gatecord.

- **command_datatypes.py**: Command descriptors, requirements, interaction
  schemas, parsed invocations and reload results.
- **entitlement_datatypes.py**: Subject kinds, entitlement records, statistics
  and sweep results.
"""
