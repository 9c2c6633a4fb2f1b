"""Configuration schema for the multi-pass chart generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from omegaconf import OmegaConf


@dataclass(slots=True)
class AnthropicConfig:
    """Configuration for the Anthropic client."""

    api_key: str | None = None
    model: str = "claude-sonnet-4-5"
    client_timeout: float | None = None


@dataclass(slots=True)
class BedrockConfig:
    """Configuration for Anthropic models served through AWS Bedrock."""

    aws_region: str | None = None
    aws_access_key: str | None = None
    aws_secret_key: str | None = None
    model: str = "us.anthropic.claude-sonnet-4-5-20250929-v1:0"
    client_timeout: float | None = None


@dataclass(slots=True)
class OpenAIConfig:
    """Configuration for the OpenAI (or OpenAI-compatible) client."""

    api_key: str | None = None
    org_id: str | None = None
    model: str = "gpt-4o"
    client_timeout: float | None = None


@dataclass(slots=True)
class OllamaConfig:
    """Configuration for the Ollama client."""

    model: str = "llama3.1:70b"
    base_url: str = "http://localhost:11434"
    client_timeout: float = 1800.0


@dataclass(slots=True)
class LLMConfig:
    """Configuration for all LLM clients."""

    backend: str = "anthropic"  # options: anthropic, bedrock, openai, vllm, ollama
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    bedrock: BedrockConfig = field(default_factory=BedrockConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)


@dataclass(slots=True)
class SamplingConfig:
    """Token budget and temperature for one kind of model call."""

    max_tokens: int = 4000
    temperature: float = 0.3


@dataclass(slots=True)
class BatchConfig:
    """Stage-3 fan-out: batch size, concurrency window and inter-window delay."""

    batch_size: int = 10
    concurrency: int = 2
    window_delay_seconds: float = 2.0


@dataclass(slots=True)
class ValidationConfig:
    """Stage-4 sampling and completeness thresholds."""

    sample_window_chars: int = 4000
    min_completeness: int = 90


@dataclass(slots=True)
class CheckpointConfig:
    """Location and freshness window of the resume checkpoint."""

    path: Path = Path(".master_chart/checkpoint.json")
    max_age_seconds: float = 3600.0


@dataclass(slots=True)
class PipelineConfig:
    """Aggregated configuration for a generation run."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    lifecycle: SamplingConfig = field(
        default_factory=lambda: SamplingConfig(max_tokens=2000, temperature=0.2)
    )
    stage1: SamplingConfig = field(
        default_factory=lambda: SamplingConfig(max_tokens=8000, temperature=0.2)
    )
    stage2: SamplingConfig = field(default_factory=lambda: SamplingConfig(max_tokens=6000))
    batch: SamplingConfig = field(default_factory=lambda: SamplingConfig(max_tokens=32000))
    supplementary: SamplingConfig = field(
        default_factory=lambda: SamplingConfig(max_tokens=16000, temperature=0.5)
    )
    remote_validation: SamplingConfig = field(
        default_factory=lambda: SamplingConfig(max_tokens=4000, temperature=0.0)
    )
    batching: BatchConfig = field(default_factory=BatchConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    checkpoint: CheckpointConfig = field(default_factory=CheckpointConfig)


def load_pipeline_config(path: Path | str | None = None) -> PipelineConfig:
    """Return defaults, or defaults merged with a YAML/JSON override file."""

    if path is None:
        return PipelineConfig()
    base = OmegaConf.structured(PipelineConfig())
    overrides = OmegaConf.load(Path(path))
    merged = OmegaConf.merge(base, overrides)
    return OmegaConf.to_object(merged)  # type: ignore[return-value]


__all__ = [
    "AnthropicConfig",
    "BatchConfig",
    "BedrockConfig",
    "CheckpointConfig",
    "LLMConfig",
    "OllamaConfig",
    "OpenAIConfig",
    "PipelineConfig",
    "SamplingConfig",
    "ValidationConfig",
    "load_pipeline_config",
]
