"""
Persistence for User records.

    UserStorage            abstract contract (base.py)
    PostgresUserStorage    psycopg2 pool backed (postgres.py)
    InMemoryUserStorage    dict backed test double (memory.py)
"""

from .base import UserStorage
from .memory import InMemoryUserStorage
from .postgres import PostgresUserStorage, connect_pool

__all__ = [
    "UserStorage",
    "InMemoryUserStorage",
    "PostgresUserStorage",
    "connect_pool",
]
