"""CRUD service over a primary/replica PostgreSQL pair with explicit read/write routing."""

__version__ = "1.0.0"
