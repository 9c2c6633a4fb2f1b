from __future__ import annotations

from pathlib import Path

import pytest
from omegaconf.errors import ConfigKeyError

from master_chart.generation.config import PipelineConfig, load_pipeline_config


def test_defaults_match_pipeline_constants() -> None:
    config = load_pipeline_config()

    assert isinstance(config, PipelineConfig)
    assert config.batching.batch_size == 10
    assert config.batching.concurrency == 2
    assert config.batching.window_delay_seconds == 2.0
    assert config.validation.sample_window_chars == 4000
    assert config.checkpoint.max_age_seconds == 3600.0


def test_yaml_overrides_are_merged(tmp_path: Path) -> None:
    path = tmp_path / "chart.yaml"
    path.write_text(
        "llm:\n"
        "  backend: ollama\n"
        "  ollama:\n"
        "    model: qwen2.5:32b\n"
        "batching:\n"
        "  batch_size: 5\n"
        "checkpoint:\n"
        "  path: /tmp/charts/checkpoint.json\n",
        encoding="utf-8",
    )

    config = load_pipeline_config(path)

    assert config.llm.backend == "ollama"
    assert config.llm.ollama.model == "qwen2.5:32b"
    assert config.batching.batch_size == 5
    assert config.batching.concurrency == 2
    assert config.checkpoint.path == Path("/tmp/charts/checkpoint.json")
    assert config.stage1.max_tokens == 8000


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "chart.yaml"
    path.write_text("batching:\n  window_size: 4\n", encoding="utf-8")

    with pytest.raises(ConfigKeyError):
        load_pipeline_config(path)
