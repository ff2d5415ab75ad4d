"""
Configuration management for answer bank stores.

The configuration is stored as a TOML file in the store directory.
It specifies the storage backend, embedding parameters, and the ranking
thresholds and weights.
"""

import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# tomli_w for writing TOML (tomllib is read-only)
try:
    import tomli_w
except ImportError:
    tomli_w = None  # type: ignore

from .types import DEFAULT_CONTENT


CONFIG_FILENAME = "answerbank.toml"
CONFIG_VERSION = 1

STORE_PATH_ENV = "ANSWERBANK_STORE_PATH"


@dataclass
class EmbeddingConfig:
    """Parameters of the hash-based embedding generator."""
    dimension: int = 64
    prime: int = 997
    max_tokens: int = 100


@dataclass
class RankingConfig:
    """
    Thresholds and weights of the hybrid ranker.

    The values are empirical. They are kept here, overridable per store,
    rather than as literals in the ranker.
    """
    min_query_length: int = 5
    keyword_floor: float = 0.3
    embedding_floor: float = 0.2
    acceptance_threshold: float = 0.25
    keyword_only_threshold: float = 0.3
    embedding_weight: float = 0.7
    keyword_weight: float = 0.3
    content_match_weight: float = 0.3
    manual_match_weight: float = 0.7


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    backend: str = "sqlite"
    default_content: str = DEFAULT_CONTENT

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_default_store_path() -> Path:
    """Store directory: ANSWERBANK_STORE_PATH, else ~/.answerbank."""
    env_path = os.environ.get(STORE_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.home() / ".answerbank"


def _parse_section(cls, section: dict[str, Any]):
    """Build a dataclass from a TOML section, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in section.items() if k in known})


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})

    # Validate version
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    try:
        embedding = _parse_section(EmbeddingConfig, data.get("embedding", {}))
        ranking = _parse_section(RankingConfig, data.get("ranking", {}))
    except TypeError as e:
        raise ValueError(f"Invalid config {config_path}: {e}") from e

    return StoreConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        backend=store.get("backend", "sqlite"),
        default_content=store.get("default_content", DEFAULT_CONTENT),
        embedding=embedding,
        ranking=ranking,
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    if tomli_w is None:
        raise RuntimeError("tomli_w is required to save config. Install with: pip install tomli-w")

    # Ensure directory exists
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "backend": config.backend,
            "default_content": config.default_content,
        },
        "embedding": asdict(config.embedding),
        "ranking": asdict(config.ranking),
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Optional[Path] = None) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    if store_path is None:
        store_path = get_default_store_path()
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    else:
        config = StoreConfig(path=store_path)
        save_config(config)
        return config
