"""
Database package for Gatecord.

- **db_connection.py**: ``ConnectionManager``, the single long-lived aiosqlite
  connection with serialised write transactions.
- **db_schema.py**: ``SchemaManager``, table and index creation.
"""
