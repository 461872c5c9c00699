"""
Configuration management for Job Alert.

Handles loading and validating configuration from YAML files, with
secrets taken from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class EmbeddingConfig:
    """Configuration for the Jina AI embeddings provider."""
    api_url: str = "https://api.jina.ai/v1/embeddings"
    api_key: Optional[str] = None  # Normally supplied via JINA_API_KEY
    model: str = "jina-embeddings-v3"
    task: str = "text-matching"
    dimensions: int = 768
    timeout: int = 60
    max_attempts: int = 3
    # Backoff bases in milliseconds
    rate_limit_backoff_ms: int = 5000  # 2^attempt * base on HTTP 429
    server_error_backoff_ms: int = 5000  # Fixed wait on HTTP >= 500
    network_error_backoff_ms: int = 2000  # 2^attempt * base on transport errors


@dataclass
class PipelineConfig:
    """Configuration for the external scrape/score/notify pipeline endpoint."""
    url: str = "http://localhost:3000/api/cron/run-pipeline"
    cron_secret: Optional[str] = None  # Normally supplied via CRON_SECRET
    timeout: int = 600  # A full pipeline run can take several minutes


@dataclass
class DatabaseConfig:
    """Database configuration."""
    db_path: str = "jobalert.db"


@dataclass
class UserConfig:
    """Which preference record the CLI acts on by default."""
    default_user_id: str = "default"


@dataclass
class Config:
    """Main configuration container."""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    user: UserConfig = field(default_factory=UserConfig)

    def validate(self) -> list[str]:
        """
        Validate the configuration and return a list of errors.

        A missing API key is not reported here; it is checked when an
        embedding is actually requested.

        Returns:
            List of validation error messages. Empty if valid.
        """
        errors = []

        if not self.embedding.api_url:
            errors.append("embedding.api_url must be specified")

        if not self.embedding.model:
            errors.append("embedding.model must be specified")

        if self.embedding.dimensions <= 0:
            errors.append(
                f"embedding.dimensions must be positive, got {self.embedding.dimensions}"
            )

        if self.embedding.max_attempts < 1:
            errors.append(
                f"embedding.max_attempts must be at least 1, got {self.embedding.max_attempts}"
            )

        for name in ("rate_limit_backoff_ms", "server_error_backoff_ms", "network_error_backoff_ms"):
            if getattr(self.embedding, name) < 0:
                errors.append(f"embedding.{name} must not be negative")

        if not self.pipeline.url:
            errors.append("pipeline.url must be specified")

        if not self.user.default_user_id:
            errors.append("user.default_user_id must be specified")

        return errors


def _apply_env_overrides(config: Config) -> None:
    """Secrets come from the environment and win over the YAML file."""
    api_key = os.environ.get("JINA_API_KEY")
    if api_key:
        config.embedding.api_key = api_key

    cron_secret = os.environ.get("CRON_SECRET")
    if cron_secret:
        config.pipeline.cron_secret = cron_secret


def resolve_config_path(config_path: Optional[str] = None) -> str:
    """Explicit path first, then JOBALERT_CONFIG, then config.yaml."""
    if config_path is None:
        config_path = os.environ.get("JOBALERT_CONFIG", "config.yaml")
    return config_path


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from a YAML file.

    A missing file is not an error: defaults are used and secrets are
    still read from the environment.

    Args:
        config_path: Path to the YAML configuration file.
                    Defaults to $JOBALERT_CONFIG, then 'config.yaml'.

    Returns:
        Validated Config object.

    Raises:
        ValueError: If the configuration is invalid.
    """
    config_path = resolve_config_path(config_path)

    raw_config = {}
    path = Path(config_path)
    if path.exists():
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

    config = Config()

    # Load embedding config
    if "embedding" in raw_config:
        emb_data = raw_config["embedding"]
        config.embedding = EmbeddingConfig(
            api_url=emb_data.get("api_url", config.embedding.api_url),
            api_key=emb_data.get("api_key", config.embedding.api_key),
            model=emb_data.get("model", config.embedding.model),
            task=emb_data.get("task", config.embedding.task),
            dimensions=emb_data.get("dimensions", config.embedding.dimensions),
            timeout=emb_data.get("timeout", config.embedding.timeout),
            max_attempts=emb_data.get("max_attempts", config.embedding.max_attempts),
            rate_limit_backoff_ms=emb_data.get(
                "rate_limit_backoff_ms", config.embedding.rate_limit_backoff_ms
            ),
            server_error_backoff_ms=emb_data.get(
                "server_error_backoff_ms", config.embedding.server_error_backoff_ms
            ),
            network_error_backoff_ms=emb_data.get(
                "network_error_backoff_ms", config.embedding.network_error_backoff_ms
            ),
        )

    # Load pipeline config
    if "pipeline" in raw_config:
        pipe_data = raw_config["pipeline"]
        config.pipeline = PipelineConfig(
            url=pipe_data.get("url", config.pipeline.url),
            cron_secret=pipe_data.get("cron_secret", config.pipeline.cron_secret),
            timeout=pipe_data.get("timeout", config.pipeline.timeout),
        )

    # Load database config
    if "database" in raw_config:
        db_data = raw_config["database"]
        config.database = DatabaseConfig(
            db_path=db_data.get("db_path", config.database.db_path),
        )

    # Load user config
    if "user" in raw_config:
        user_data = raw_config["user"]
        config.user = UserConfig(
            default_user_id=user_data.get("default_user_id", config.user.default_user_id),
        )

    _apply_env_overrides(config)

    # Validate configuration
    errors = config.validate()
    if errors:
        raise ValueError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    return config


def generate_example_config(output_path: str = "config.example.yaml") -> None:
    """
    Generate an example configuration file with all available options.

    Args:
        output_path: Path where the example config will be written.
    """
    example_config = """# Job Alert Configuration
# Copy this file to config.yaml and customize for your needs.
# Secrets are read from the environment:
#   JINA_API_KEY  - required for embeddings
#   CRON_SECRET   - optional bearer token for the pipeline endpoint

# Embedding provider (Jina AI)
embedding:
  api_url: "https://api.jina.ai/v1/embeddings"
  model: "jina-embeddings-v3"
  task: "text-matching"
  dimensions: 768
  timeout: 60  # seconds
  max_attempts: 3
  rate_limit_backoff_ms: 5000     # waits 2^attempt * this on HTTP 429
  server_error_backoff_ms: 5000   # fixed wait on HTTP 5xx
  network_error_backoff_ms: 2000  # waits 2^attempt * this on connection errors

# External scrape + score + notify pipeline
pipeline:
  url: "http://localhost:3000/api/cron/run-pipeline"
  timeout: 600  # seconds, a full run takes 2-5 minutes

# Database Settings
database:
  db_path: "jobalert.db"

# User whose skills are used when --user-id is not given
user:
  default_user_id: "default"
"""

    with open(output_path, "w") as f:
        f.write(example_config)

    print(f"Example configuration written to: {output_path}")
