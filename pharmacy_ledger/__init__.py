# pharmacy_ledger/__init__.py
"""
Batch & return ledger for a pharmacy store backed by a local SQLite file.

Sub-packages:
  ledger    - pure arithmetic (units, GST split, batch upsert, return reversal)
  database  - connection, schema and repositories
  services  - transactional purchase / return operations
"""

__version__ = "0.1.0"
