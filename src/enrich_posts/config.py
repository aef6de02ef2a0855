"""Configuration loader for the enrichment pipeline."""

from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from common.config import ConfigSingleton, env_flag, env_number, read_config_file, resolve_config_path

load_dotenv()

CONFIG_DIR = Path(__file__).parent / "configs"


@dataclass
class ListenerConfig:
    enabled: bool = True
    interval_seconds: float = 30.0
    min_posts: int = 10  # backlog size below which a pass does nothing
    max_posts_per_run: int = 10000
    max_in_flight: int = 1
    inter_post_delay_seconds: float = 1.0
    error_threshold: int = 3
    cooldown_seconds: float = 60.0


@dataclass
class AnalysisConfig:
    model: str = "gpt-4o-mini"
    max_tokens: int = 4000
    temperature: float = 0.0
    timeout_seconds: float = 60.0
    default_confidence: float = 0.8
    sample_chars: int = 1000  # payload sample logged on parse errors


@dataclass
class EmbeddingConfig:
    model: str = "text-embedding-3-large"
    dimensions: int = 1536
    char_limit: int = 8000
    timeout_seconds: float = 30.0
    max_attempts: int = 2
    backoff_base_seconds: float = 1.0
    fallback_value: float = 0.001
    min_text_chars: int = 3


@dataclass
class PersistConfig:
    batch_size: int = 100
    batch_delay_seconds: float = 0.05


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class EnrichConfig:
    listener: ListenerConfig = field(default_factory=ListenerConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    persist: PersistConfig = field(default_factory=PersistConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def load_config(config_name: str | None = None) -> EnrichConfig:
    """Load configuration from YAML file, then apply environment overrides.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses ENRICH_CONFIG env var or "prod".

    Returns:
        Loaded EnrichConfig object
    """
    config_path = resolve_config_path(CONFIG_DIR, config_name, env_var="ENRICH_CONFIG")
    config = _parse_config(read_config_file(config_path))
    _apply_env_overrides(config)
    _validate(config)
    return config


def _parse_config(data: dict) -> EnrichConfig:
    """Parse config dictionary into EnrichConfig object."""
    listener_raw = data.get("listener", {})
    analysis_raw = data.get("analysis", {})
    embedding_raw = data.get("embedding", {})
    persist_raw = data.get("persist", {})
    server_raw = data.get("server", {})

    listener = ListenerConfig(
        enabled=listener_raw.get("enabled", True),
        interval_seconds=float(listener_raw.get("interval_seconds", 30)),
        min_posts=listener_raw.get("min_posts", 10),
        max_posts_per_run=listener_raw.get("max_posts_per_run", 10000),
        max_in_flight=listener_raw.get("max_in_flight", 1),
        inter_post_delay_seconds=float(listener_raw.get("inter_post_delay_seconds", 1.0)),
        error_threshold=listener_raw.get("error_threshold", 3),
        cooldown_seconds=float(listener_raw.get("cooldown_seconds", 60)),
    )

    analysis = AnalysisConfig(
        model=analysis_raw.get("model", "gpt-4o-mini"),
        max_tokens=analysis_raw.get("max_tokens", 4000),
        temperature=float(analysis_raw.get("temperature", 0.0)),
        timeout_seconds=float(analysis_raw.get("timeout_seconds", 60)),
        default_confidence=float(analysis_raw.get("default_confidence", 0.8)),
        sample_chars=analysis_raw.get("sample_chars", 1000),
    )

    embedding = EmbeddingConfig(
        model=embedding_raw.get("model", "text-embedding-3-large"),
        dimensions=embedding_raw.get("dimensions", 1536),
        char_limit=embedding_raw.get("char_limit", 8000),
        timeout_seconds=float(embedding_raw.get("timeout_seconds", 30)),
        max_attempts=embedding_raw.get("max_attempts", 2),
        backoff_base_seconds=float(embedding_raw.get("backoff_base_seconds", 1.0)),
        fallback_value=float(embedding_raw.get("fallback_value", 0.001)),
        min_text_chars=embedding_raw.get("min_text_chars", 3),
    )

    persist = PersistConfig(
        batch_size=persist_raw.get("batch_size", 100),
        batch_delay_seconds=float(persist_raw.get("batch_delay_seconds", 0.05)),
    )

    server = ServerConfig(
        host=server_raw.get("host", "0.0.0.0"),
        port=server_raw.get("port", 3000),
    )

    return EnrichConfig(
        listener=listener,
        analysis=analysis,
        embedding=embedding,
        persist=persist,
        server=server,
    )


def _apply_env_overrides(config: EnrichConfig) -> None:
    config.listener.enabled = env_flag("ENABLE_LISTENER", default=config.listener.enabled)
    config.listener.interval_seconds = env_number(
        "LISTENER_INTERVAL_SECONDS", config.listener.interval_seconds, cast=float
    )
    config.listener.min_posts = env_number("MIN_POSTS_TO_PROCESS", config.listener.min_posts)
    config.server.port = env_number("PORT", config.server.port)


def _validate(config: EnrichConfig) -> None:
    if config.listener.max_in_flight != 1:
        # Sequential processing keeps the OpenAI load under its rate limits.
        raise ValueError("listener.max_in_flight must be 1; parallel enrichment is not supported")
    if config.listener.interval_seconds <= 0:
        raise ValueError("listener.interval_seconds must be positive")
    if config.embedding.max_attempts < 1:
        raise ValueError("embedding.max_attempts must be at least 1")
    if config.persist.batch_size < 1:
        raise ValueError("persist.batch_size must be at least 1")


_manager: ConfigSingleton[EnrichConfig] = ConfigSingleton(load_config)
get_config = _manager.get
set_config = _manager.set
reset_config = _manager.reset
