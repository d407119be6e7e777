"""
Storage Configuration Model.
"""

from pathlib import Path

from pydantic import Field

from .base import BaseConfig


class StorageConfig(BaseConfig):
    """Fund state persistence configuration."""

    enabled: bool = Field(
        default=False,
        description="Persist fund state and transactions to SQLite",
    )
    db_path: str = Field(
        default="data/index_fund.db",
        description="SQLite database file",
    )

    @property
    def path(self) -> Path:
        """Database path as a Path."""
        return Path(self.db_path)
