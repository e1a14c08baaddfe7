"""
Server Configuration

Loads configuration from environment variables and provides defaults.
Supports loading from .env file using python-dotenv.

Any backend whose variables are missing is not constructed; the pipeline then
runs with that signal degraded.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from recommender.models import PipelineConfig
from recommender.utils import parse_iso

# Single .env at the project root for the server and Docker
root_env = Path(__file__).resolve().parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)


@dataclass
class ServerConfig:
    """Server configuration."""

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Embeddings
    openai_api_key: Optional[str] = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536

    # Vector search
    qdrant_url: Optional[str] = None
    qdrant_api_key: Optional[str] = None
    qdrant_collection: str = "events"

    # Keyword search
    typesense_url: Optional[str] = None
    typesense_api_key: Optional[str] = None
    typesense_collection: str = "events"

    # Reranker
    reranker_endpoint_url: Optional[str] = None

    # Graph
    neo4j_uri: Optional[str] = None
    neo4j_user: Optional[str] = None
    neo4j_password: Optional[str] = None

    # Firestore: snapshots, taste vectors, interaction log
    firebase_credentials_path: Optional[Path] = None
    firebase_project_id: Optional[str] = None

    # LiteLLM model id for AI summaries; empty disables them
    summary_model: Optional[str] = None

    # Record query and impression events; off swaps in a sink that drops them
    log_interactions: bool = True

    default_city: str = "New York"
    # Fixed "now" for deterministic staging runs
    freeze_time_iso: Optional[str] = None
    # JSON file merged into PipelineConfig defaults
    pipeline_config_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        base_dir = Path(__file__).parent.parent

        def _path_env(key: str) -> Optional[Path]:
            v = os.getenv(key)
            if not v:
                return None
            p = Path(v)
            return p if p.is_absolute() else (base_dir / p).resolve()

        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            embedding_dimensions=int(os.getenv("EMBEDDING_DIMENSIONS", "1536")),
            qdrant_url=os.getenv("QDRANT_URL") or None,
            qdrant_api_key=os.getenv("QDRANT_API_KEY") or None,
            qdrant_collection=os.getenv("QDRANT_COLLECTION", "events"),
            typesense_url=os.getenv("TYPESENSE_URL") or None,
            typesense_api_key=os.getenv("TYPESENSE_API_KEY") or None,
            typesense_collection=os.getenv("TYPESENSE_COLLECTION", "events"),
            reranker_endpoint_url=os.getenv("RERANKER_ENDPOINT_URL") or None,
            neo4j_uri=os.getenv("NEO4J_URI") or None,
            neo4j_user=os.getenv("NEO4J_USER") or None,
            neo4j_password=os.getenv("NEO4J_PASSWORD") or None,
            firebase_credentials_path=_path_env("FIREBASE_CREDENTIALS_PATH") or _path_env("GOOGLE_APPLICATION_CREDENTIALS"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID") or None,
            summary_model=os.getenv("SUMMARY_MODEL", "").strip() or None,
            log_interactions=os.getenv("LOG_INTERACTIONS", "true").strip().lower() not in ("0", "false", "no", "off"),
            default_city=os.getenv("DEFAULT_CITY", "New York"),
            freeze_time_iso=os.getenv("FREEZE_TIME_ISO") or None,
            pipeline_config_path=_path_env("PIPELINE_CONFIG_PATH"),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate the configuration.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        if self.qdrant_url and not self.openai_api_key:
            errors.append("QDRANT_URL is set but OPENAI_API_KEY is missing (query embeddings)")

        if self.neo4j_uri and not (self.neo4j_user and self.neo4j_password):
            errors.append("NEO4J_URI is set but NEO4J_USER / NEO4J_PASSWORD are missing")

        if self.firebase_credentials_path and not self.firebase_credentials_path.is_file():
            errors.append(f"Firebase credentials file not found: {self.firebase_credentials_path}")

        if self.pipeline_config_path and not self.pipeline_config_path.is_file():
            errors.append(f"Pipeline config file not found: {self.pipeline_config_path}")

        if self.embedding_dimensions <= 0:
            errors.append(f"EMBEDDING_DIMENSIONS must be positive, got {self.embedding_dimensions}")

        if self.freeze_time_iso:
            try:
                parse_iso(self.freeze_time_iso)
            except ValueError:
                errors.append(f"FREEZE_TIME_ISO is not an ISO-8601 timestamp: {self.freeze_time_iso}")

        return len(errors) == 0, errors

    def load_pipeline_config(self) -> PipelineConfig:
        """PipelineConfig from PIPELINE_CONFIG_PATH, or defaults when unset or unreadable."""
        if not self.pipeline_config_path or not self.pipeline_config_path.is_file():
            return PipelineConfig()
        with open(self.pipeline_config_path) as f:
            return PipelineConfig.from_dict(json.load(f))


# Global config instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def reload_config() -> ServerConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
