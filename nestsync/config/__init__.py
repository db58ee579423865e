from __future__ import annotations

from .database import DatabaseConfig
from .runtime import RuntimeConfig
from .settings import AppConfig, Settings, load_config
from .tree import TreeConfig

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "RuntimeConfig",
    "Settings",
    "TreeConfig",
    "load_config",
]
