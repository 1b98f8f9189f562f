"""Tests for configuration loading."""

from datetime import timedelta

import pytest

from chain_embeddings.config import ChainIndexConfig
from chain_embeddings.exceptions import ValidationError


class TestDefaults:
    def test_defaults(self):
        config = ChainIndexConfig()

        assert config.max_idle_gap == timedelta(hours=1)
        assert config.processing_delay == timedelta(seconds=48)
        assert config.chain_fetch_limit == 100
        assert config.match_threshold == 0.3
        assert config.match_count == 10
        assert config.embedding_provider == "voyage"


class TestFromEnv:
    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("CHAIN_INDEX_MAX_IDLE_GAP_SECONDS", "1800")
        monkeypatch.setenv("CHAIN_INDEX_MATCH_COUNT", "25")
        monkeypatch.setenv("CHAIN_INDEX_INCLUDE_CHAIN_CONTEXT", "false")
        monkeypatch.setenv("CHAIN_INDEX_EMBEDDING_PROVIDER", "openai")

        config = ChainIndexConfig.from_env()

        assert config.max_idle_gap_seconds == 1800.0
        assert config.match_count == 25
        assert config.include_chain_context is False
        assert config.embedding_provider == "openai"

    def test_bad_number_raises_validation_error(self, monkeypatch):
        monkeypatch.setenv("CHAIN_INDEX_MATCH_COUNT", "lots")

        with pytest.raises(ValidationError) as exc_info:
            ChainIndexConfig.from_env()

        assert exc_info.value.field == "match_count"


class TestFromYaml:
    def test_reads_chain_index_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "chain_index:\n"
            "  db_path: /tmp/index.db\n"
            "  processing_delay_seconds: 10\n"
            "  match_threshold: 0.45\n"
            "  display_timezone: Europe/London\n"
            "  unknown_key: ignored\n"
        )

        config = ChainIndexConfig.from_yaml(path)

        assert config.db_path == "/tmp/index.db"
        assert config.processing_delay_seconds == 10.0
        assert config.match_threshold == 0.45
        assert config.display_timezone == "Europe/London"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert ChainIndexConfig.from_yaml(path) == ChainIndexConfig()


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_idle_gap_seconds": 0},
            {"processing_delay_seconds": -1},
            {"chain_fetch_limit": 0},
            {"match_threshold": 1.5},
            {"match_count": 0},
            {"task_max_attempts": 0},
            {"embedding_provider": "word2vec"},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            ChainIndexConfig(**kwargs)
