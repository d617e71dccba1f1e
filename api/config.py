"""Settings for the CBDB network API."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import yaml

from api.services.relations import RELATION_TYPES

ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = ROOT_DIR / "config.yaml"
DEFAULT_DB_PATH = ROOT_DIR / "data" / "cbdb.sqlite"


@dataclass
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    default_depth: int = 1
    max_depth: int = 3
    max_nodes: Optional[int] = 1000
    default_relation_types: List[str] = field(default_factory=lambda: ["kinship", "association"])
    cors_origins: List[str] = field(
        default_factory=lambda: [
            "http://localhost:3000",  # React dev server
            "http://127.0.0.1:3000",
            "http://localhost:8501",  # Streamlit
            "http://127.0.0.1:8501",
        ]
    )
    log_level: str = "INFO"


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from a YAML file and the environment.

    The file is ``CBDB_CONFIG`` if set, else ``config.yaml`` in the repo root.
    Missing files fall back to defaults. ``CBDB_DB_PATH`` and
    ``CBDB_LOG_LEVEL`` override whatever the file says.

    Raises:
        ValueError: If the file sets an unknown key or relation type.
    """
    if config_path is None:
        env_path = os.environ.get("CBDB_CONFIG")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    config = {}
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(config) - known)
    if unknown:
        raise ValueError(f"Unknown settings in {config_path}: {unknown}")

    settings = Settings(**config)
    settings.db_path = Path(settings.db_path)
    if not settings.db_path.is_absolute():
        settings.db_path = ROOT_DIR / settings.db_path

    if os.environ.get("CBDB_DB_PATH"):
        settings.db_path = Path(os.environ["CBDB_DB_PATH"])
    if os.environ.get("CBDB_LOG_LEVEL"):
        settings.log_level = os.environ["CBDB_LOG_LEVEL"]

    invalid = [t for t in settings.default_relation_types if t not in RELATION_TYPES]
    if invalid:
        raise ValueError(f"Invalid relation types: {invalid}. Valid types: {RELATION_TYPES}")

    return settings


@lru_cache
def get_settings() -> Settings:
    return load_settings()
