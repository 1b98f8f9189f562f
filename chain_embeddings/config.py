"""
Configuration for the chain index.

Values come from the environment (``CHAIN_INDEX_*``) or from a YAML file
with a top-level ``chain_index`` section:

```yaml
chain_index:
  db_path: /var/lib/chat/chain-index.db
  max_idle_gap_seconds: 3600
  processing_delay_seconds: 48
  embedding_provider: voyage
  match_threshold: 0.3
  match_count: 10
```

The idle gap and processing delay are tunables, not invariants.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ValidationError

ENV_PREFIX = "CHAIN_INDEX_"
EMBEDDING_PROVIDERS = ("voyage", "openai", "azure_openai")


@dataclass
class ChainIndexConfig:
    """Settings for the pipeline, scheduler and search service."""

    db_path: str = ":memory:"

    # Chain building
    max_idle_gap_seconds: float = 3600.0
    chain_fetch_limit: int = 100

    # Debounced processing
    processing_delay_seconds: float = 48.0
    task_poll_interval_seconds: float = 5.0
    task_max_attempts: int = 5
    task_retry_base_seconds: float = 30.0

    # Context synthesis
    context_model: str = "gpt-4o-mini"
    context_temperature: float = 0.3
    context_max_tokens: int = 100
    history_token_budget: int = 12000

    # Embeddings
    embedding_provider: str = "voyage"
    embed_token_limit: int = 8192

    # Search
    match_threshold: float = 0.3
    match_count: int = 10
    include_chain_context: bool = True

    # Rendering and logging
    display_timezone: str = "UTC"
    log_level: str = "INFO"
    json_logs: bool = True

    def __post_init__(self) -> None:
        self.validate()

    @property
    def max_idle_gap(self) -> timedelta:
        return timedelta(seconds=self.max_idle_gap_seconds)

    @property
    def processing_delay(self) -> timedelta:
        return timedelta(seconds=self.processing_delay_seconds)

    def validate(self) -> None:
        if self.max_idle_gap_seconds <= 0:
            raise ValidationError(
                "max_idle_gap_seconds", "must be positive", str(self.max_idle_gap_seconds)
            )
        if self.processing_delay_seconds < 0:
            raise ValidationError(
                "processing_delay_seconds", "must not be negative",
                str(self.processing_delay_seconds),
            )
        if self.chain_fetch_limit < 1:
            raise ValidationError(
                "chain_fetch_limit", "must be at least 1", str(self.chain_fetch_limit)
            )
        if not 0.0 <= self.match_threshold < 1.0:
            raise ValidationError(
                "match_threshold", "must be in [0, 1)", str(self.match_threshold)
            )
        if self.match_count < 1:
            raise ValidationError("match_count", "must be at least 1", str(self.match_count))
        if self.task_max_attempts < 1:
            raise ValidationError(
                "task_max_attempts", "must be at least 1", str(self.task_max_attempts)
            )
        if self.embedding_provider not in EMBEDDING_PROVIDERS:
            raise ValidationError(
                "embedding_provider",
                f"must be one of {', '.join(EMBEDDING_PROVIDERS)}",
                self.embedding_provider,
            )

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> ChainIndexConfig:
        """Build a config from loose values (strings from env, scalars from YAML)."""
        kwargs: dict[str, Any] = {}
        known = {f.name: f for f in fields(cls)}
        for name, raw in values.items():
            if name not in known or raw is None:
                continue
            kwargs[name] = _coerce(name, known[name].type, raw)
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> ChainIndexConfig:
        """
        Create config from environment variables.

        Every field maps to ``CHAIN_INDEX_<FIELD_NAME>``, e.g.
        ``CHAIN_INDEX_MAX_IDLE_GAP_SECONDS=1800``.
        """
        values = {}
        for f in fields(cls):
            raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is not None:
                values[f.name] = raw
        return cls.from_mapping(values)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ChainIndexConfig:
        """Create config from the ``chain_index`` section of a YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        section = data.get("chain_index", data)
        if not isinstance(section, dict):
            raise ValidationError("chain_index", "section must be a mapping", str(path))
        return cls.from_mapping(section)


def _coerce(name: str, type_name: Any, raw: Any) -> Any:
    # Annotations are strings under `from __future__ import annotations`
    type_name = str(type_name)
    try:
        if type_name == "bool":
            if isinstance(raw, bool):
                return raw
            return str(raw).strip().lower() in ("true", "1", "yes", "on")
        if type_name == "int":
            return int(raw)
        if type_name == "float":
            return float(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(name, f"expected {type_name}", str(raw)) from e
    return str(raw)
