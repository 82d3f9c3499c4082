"""
Family Finance - Core Package

Household finance records (people, account types, accounts) kept in a
local database, with a natural-language assistant that creates records
and a per-person JSON export for migration.

DESIGN PRINCIPLES:
1. The store handle is built once and passed explicitly
2. AI output is decoded into a closed schema or treated as plain text
3. Network and not-found failures surface; everything else degrades gracefully
4. Every mutation is auditable
"""

__version__ = "1.0.0"
__author__ = "Family Finance Team"
