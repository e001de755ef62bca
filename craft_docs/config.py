"""
Configuration loading for the Craft document server.

The configuration file lists the Craft documents to expose:

    {"documents": [{"name": "Notes", "apiEndpoint": "https://..."}]}

It is validated once with pydantic and converted to the frozen Config
dataclass that the rest of the package reads.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import Config, ConfigError, DocumentConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

_cached_config: Optional[Config] = None


class DocumentEntry(BaseModel):
    """One document entry in the configuration file."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    api_endpoint: str = Field(..., alias="apiEndpoint", min_length=1)


class ConfigFile(BaseModel):
    """Root of the configuration file."""
    documents: List[DocumentEntry] = Field(..., min_length=1)

    @field_validator("documents")
    @classmethod
    def names_are_unique(cls, documents: List[DocumentEntry]) -> List[DocumentEntry]:
        seen = set()
        for doc in documents:
            if doc.name in seen:
                raise ValueError(f"duplicate document name '{doc.name}'")
            seen.add(doc.name)
        return documents


def config_path() -> Path:
    """Resolve the configuration path from CRAFT_CONFIG_PATH or the default."""
    return Path(os.getenv("CRAFT_CONFIG_PATH", str(DEFAULT_CONFIG_PATH)))


def parse_config(raw: object) -> Config:
    """
    Validate decoded configuration data.

    Args:
        raw: Decoded JSON value

    Returns:
        Immutable Config

    Raises:
        ConfigError: If documents are missing, empty, incomplete or duplicated
    """
    try:
        parsed = ConfigFile.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid config: {problems}") from e

    return Config(documents=tuple(
        DocumentConfig(name=doc.name, api_endpoint=doc.api_endpoint)
        for doc in parsed.documents
    ))


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load and validate the configuration file.

    Args:
        path: File to read; defaults to config_path()

    Raises:
        ConfigError: If the file is missing, not JSON, or invalid
    """
    path = Path(path) if path is not None else config_path()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e

    config = parse_config(raw)
    logger.info("Loaded configuration with %d document(s) from %s", len(config.documents), path)
    return config


def get_config() -> Config:
    """Return the process-wide configuration, loading it on first use."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _cached_config
    _cached_config = None
