# Configuration models
from .app import AppConfig
from .base import BaseConfig
from .engine import EngineConfig
from .factory import FactoryConfig
from .storage import StorageConfig

__all__ = [
    "BaseConfig",
    "EngineConfig",
    "FactoryConfig",
    "StorageConfig",
    "AppConfig",
]
