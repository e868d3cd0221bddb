"""
Configuration for DocSearch

Settings are resolved from three layers, later layers winning:

1. Defaults on the Settings dataclass
2. YAML config file (DOCSEARCH_CONFIG, else ~/.docsearch/config.yaml)
3. Environment variables (a .env file in the project root is loaded first)

Usage:
    from core.config import load_settings

    settings = load_settings()
    print(settings.db_path, settings.embedding_dimension)
"""

import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .models import MAX_PREVIEW_LENGTH

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = Path.home() / '.docsearch' / 'config.yaml'

# Environment variable -> Settings field
ENV_MAPPING = {
    'DOCSEARCH_DB_PATH': 'db_path',
    'DOCSEARCH_UPLOAD_DIR': 'upload_dir',
    'DOCSEARCH_EMBEDDING_DIMENSION': 'embedding_dimension',
    'DOCSEARCH_MAX_EMBED_CHARS': 'max_embed_chars',
    'GEMINI_API_KEY': 'gemini_api_key',
    'DOCSEARCH_REMOTE_MODEL': 'remote_model',
    'DOCSEARCH_REMOTE_TIMEOUT': 'remote_timeout',
    'DOCSEARCH_LOCAL_MODEL': 'local_model',
    'DOCSEARCH_LOCAL_TIMEOUT': 'local_timeout',
    'DOCSEARCH_ENABLE_LOCAL_MODEL': 'enable_local_model',
    'DOCSEARCH_SEMANTIC_THRESHOLD': 'semantic_threshold',
    'DOCSEARCH_SEMANTIC_ONLY_THRESHOLD': 'semantic_only_threshold',
    'DOCSEARCH_LEXICAL_FALLBACK': 'lexical_fallback',
    'DOCSEARCH_DEFAULT_LIMIT': 'default_limit',
    'DOCSEARCH_MAX_LIMIT': 'max_limit',
    'DOCSEARCH_MAX_QUERY_LENGTH': 'max_query_length',
    'DOCSEARCH_PREVIEW_LENGTH': 'preview_length',
    'DOCSEARCH_MAX_UPLOAD_MB': 'max_upload_mb',
    'CORS_ORIGIN': 'cors_origin',
    'DOCSEARCH_LOG_LEVEL': 'log_level',
    'DOCSEARCH_JSON_LOGS': 'json_logs',
}


@dataclass
class Settings:
    """
    Runtime configuration.

    Attributes:
        db_path: SQLite database file
        upload_dir: Where uploaded files are kept
        embedding_dimension: Fixed vector length D shared by every tier
        max_embed_chars: Preprocessed text is truncated to this length
        gemini_api_key: Remote provider key; empty or 'disabled' turns tier 1 off
        remote_model: Remote embedding model name
        remote_timeout: Seconds before a remote call counts as a tier failure
        local_model: sentence-transformers model name for tier 2
        local_timeout: Seconds before local inference counts as a tier failure
        enable_local_model: Allow tier 2 at all
        semantic_threshold: Minimum similarity when lexical matching also runs
        semantic_only_threshold: Minimum similarity when semantic is the only signal
        lexical_fallback: Run the lexical pass alongside the semantic pass
    """
    db_path: str = str(PROJECT_ROOT / 'data' / 'docsearch.db')
    upload_dir: str = str(PROJECT_ROOT / 'data' / 'uploads')

    # Embeddings
    embedding_dimension: int = 384
    max_embed_chars: int = 512
    gemini_api_key: Optional[str] = None
    remote_model: str = 'text-embedding-004'
    remote_timeout: float = 10.0
    local_model: str = 'all-MiniLM-L6-v2'
    local_timeout: float = 30.0
    enable_local_model: bool = True

    # Ranking
    semantic_threshold: float = 0.5
    semantic_only_threshold: float = 0.3
    lexical_fallback: bool = True

    # Request limits
    default_limit: int = 20
    max_limit: int = 100
    max_query_length: int = 500
    preview_length: int = 200
    max_upload_mb: int = 50

    # Server
    cors_origin: str = '*'
    log_level: str = 'INFO'
    json_logs: bool = False

    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def remote_enabled(self) -> bool:
        return bool(self.gemini_api_key) and self.gemini_api_key != 'disabled'

    def update(self, values: Dict[str, Any]) -> 'Settings':
        """Apply raw values (strings allowed), coercing to each field's type."""
        known = {f.name: f for f in fields(self) if f.name != 'extra'}
        for key, raw in values.items():
            if key not in known:
                self.extra[key] = raw
                continue
            setattr(self, key, _coerce(raw, getattr(self, key), key))

        if self.preview_length is not None and self.preview_length > MAX_PREVIEW_LENGTH:
            logger.warning(
                f"preview_length {self.preview_length} exceeds {MAX_PREVIEW_LENGTH}, capping"
            )
            self.preview_length = MAX_PREVIEW_LENGTH
        return self


def _coerce(raw: Any, current: Any, key: str) -> Any:
    """Convert a raw config value to the type of the current default."""
    if raw is None:
        return None
    if isinstance(current, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in ('1', 'true', 'yes', 'on')
    try:
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for {key}: {raw!r}")
    return str(raw)


def load_yaml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the YAML config file, returning {} when it does not exist."""
    if path is None:
        env_path = os.getenv('DOCSEARCH_CONFIG')
        path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    logger.debug(f"Loaded config file {path}")
    return data


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    use_env: bool = True
) -> Settings:
    """
    Build Settings from defaults, YAML file, environment and overrides.

    Args:
        config_path: Explicit YAML file (otherwise DOCSEARCH_CONFIG / home default)
        overrides: Values applied last, mainly for tests
        use_env: Read .env and os.environ

    Returns:
        Resolved Settings
    """
    settings = Settings()
    settings.update(load_yaml_config(config_path))

    if use_env:
        load_dotenv(PROJECT_ROOT / '.env')
        env_values = {
            attr: os.environ[env_key]
            for env_key, attr in ENV_MAPPING.items()
            if env_key in os.environ
        }
        settings.update(env_values)

    if overrides:
        settings.update(overrides)

    return settings
