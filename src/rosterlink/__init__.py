"""
Rosterlink - signup identity resolution for the roster platform

When a new account signs up, Rosterlink decides whether it belongs to a
player already on the roster, and if so which one.

Main components:
- players: Normalization, match strategies, confidence scoring and the
  linkage decision service
- db: SQLAlchemy models, sessions and the SQL-backed stores
- config: Settings loaded from the environment
"""

__version__ = "1.0.0"
