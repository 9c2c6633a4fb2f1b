"""Multi-pass master chart generation: stages, batching, validation and checkpoints."""

from .batching import BatchScheduler, MonotonicProgress, ScheduleResult, plan_batches
from .cancellation import CancellationToken
from .checkpoint import (
    Checkpoint,
    CheckpointStore,
    InMemoryCheckpointStore,
    JsonFileCheckpointStore,
)
from .config import (
    AnthropicConfig,
    BatchConfig,
    BedrockConfig,
    CheckpointConfig,
    LLMConfig,
    OllamaConfig,
    OpenAIConfig,
    PipelineConfig,
    SamplingConfig,
    ValidationConfig,
    load_pipeline_config,
)
from .errors import Cancelled, PipelineError, UpstreamFailure
from .fixes import FixApplier, FixOutcome, SectionFixApplier, apply_fixes
from .local_validation import validate_locally
from .model_client import BaseModelClient, ChatMessage, ModelClient, ModelRequest
from .models import (
    Batch,
    ConceptManifest,
    GenerationResult,
    Lifecycle,
    LifecyclePhase,
    Stage1Result,
    StageOutputs,
    StageStatus,
    ValidationIssue,
    ValidationResult,
)
from .orchestrator import PassOrchestrator
from .remote_validation import RemoteAssessment, RemoteValidator, merge_validation
from .streaming import StreamAggregator

__all__ = [
    "AnthropicConfig",
    "BaseModelClient",
    "Batch",
    "BatchConfig",
    "BatchScheduler",
    "BedrockConfig",
    "Cancelled",
    "CancellationToken",
    "ChatMessage",
    "Checkpoint",
    "CheckpointConfig",
    "CheckpointStore",
    "ConceptManifest",
    "FixApplier",
    "FixOutcome",
    "GenerationResult",
    "InMemoryCheckpointStore",
    "JsonFileCheckpointStore",
    "LLMConfig",
    "Lifecycle",
    "LifecyclePhase",
    "ModelClient",
    "ModelRequest",
    "MonotonicProgress",
    "OllamaConfig",
    "OpenAIConfig",
    "PassOrchestrator",
    "PipelineConfig",
    "PipelineError",
    "RemoteAssessment",
    "RemoteValidator",
    "SamplingConfig",
    "ScheduleResult",
    "SectionFixApplier",
    "Stage1Result",
    "StageOutputs",
    "StageStatus",
    "StreamAggregator",
    "UpstreamFailure",
    "ValidationConfig",
    "ValidationIssue",
    "ValidationResult",
    "apply_fixes",
    "load_pipeline_config",
    "merge_validation",
    "plan_batches",
    "validate_locally",
]
