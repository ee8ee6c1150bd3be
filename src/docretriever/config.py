"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, TypeVar

from docretriever.embedding.ollama import DEFAULT_BASE_URL, DEFAULT_EMBED_MODEL, OllamaConfig
from docretriever.errors import ConfigError
from docretriever.index.storage import IndexStore
from docretriever.utils.text import DEFAULT_CHUNK_SIZE, DEFAULT_OVERLAP, MAX_CHUNKS, MAX_TEXT_CHARS

N = TypeVar("N", int, float)


def _get_default_cache_dir() -> Path:
    return Path.home() / ".docretriever"


def _env_number(env: Mapping[str, str], name: str, default: N, cast: Callable[[str], N]) -> N:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(slots=True)
class AppConfig:
    cache_dir: Path | None = None
    ollama_url: str = DEFAULT_BASE_URL
    embedding_model: str = DEFAULT_EMBED_MODEL
    request_timeout: float = 60.0
    chunk_chars: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_OVERLAP
    chunk_mode: str = "window"
    max_text_chars: int = MAX_TEXT_CHARS
    max_chunks: int = MAX_CHUNKS
    top_k: int = 5
    min_similarity: float = 0.6

    def __post_init__(self) -> None:
        if self.cache_dir is None:
            self.cache_dir = _get_default_cache_dir()

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if env is None else env
        cache_dir = env.get("DOCRETRIEVER_CACHE_DIR")
        return cls(
            cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
            ollama_url=env.get("OLLAMA_URL") or DEFAULT_BASE_URL,
            embedding_model=env.get("OLLAMA_EMBED_MODEL") or DEFAULT_EMBED_MODEL,
            request_timeout=_env_number(env, "DOCRETRIEVER_TIMEOUT", 60.0, float),
            chunk_chars=_env_number(env, "DOCRETRIEVER_CHUNK_CHARS", DEFAULT_CHUNK_SIZE, int),
            overlap=_env_number(env, "DOCRETRIEVER_OVERLAP", DEFAULT_OVERLAP, int),
        )

    def resolve_cache_dir(self, base_dir: Path | None = None) -> Path:
        if self.cache_dir is None:
            self.cache_dir = _get_default_cache_dir()
        if Path(self.cache_dir).is_absolute() or base_dir is None:
            return Path(self.cache_dir)
        return base_dir / self.cache_dir

    def index_store(self, base_dir: Path | None = None) -> IndexStore:
        return IndexStore(self.resolve_cache_dir(base_dir))

    def ollama_config(self) -> OllamaConfig:
        return OllamaConfig(
            base_url=self.ollama_url,
            model=self.embedding_model,
            timeout_seconds=self.request_timeout,
        )
