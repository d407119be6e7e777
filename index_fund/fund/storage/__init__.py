"""Fund persistence."""

from .repository import DEFAULT_DB_PATH, FundRepository

__all__ = ["DEFAULT_DB_PATH", "FundRepository"]
