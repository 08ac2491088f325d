"""Named YAML settings files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


class ConfigManager:
    """Resolve settings profiles (``dev.yaml``, ``prod.yml``) under one directory."""

    suffixes = (".yaml", ".yml")

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def path_for(self, name: str) -> Path:
        candidates = [self._base_path / f"{name}{suffix}" for suffix in self.suffixes]
        found = next((path for path in candidates if path.exists()), None)
        if found is None:
            raise FileNotFoundError(candidates[0])
        return found

    def load(self, name: str) -> Any:
        return self.read(self.path_for(name))

    @classmethod
    def read(cls, path: str | Path) -> Any:
        """Parse one settings file. An empty file reads as ``{}``."""
        path = Path(path)
        if path.suffix not in cls.suffixes:
            raise ValueError(f"{path.name}: expected one of {', '.join(cls.suffixes)}")
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}

    def load_app_config(self, name: str) -> AppConfig:
        return load_config(self.load(name))


__all__ = ["ConfigManager"]
