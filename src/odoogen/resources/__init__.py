from .generation_config import GenerationConfig, ProviderSettings, RetrySettings, StageSettings
from .llm_client import LLMClientProto, OpenAICompatibleClient
from .providers import (
    CredentialProvider,
    EnvCredentialProvider,
    ModelConfig,
    ModelConfigProvider,
    StaticCredentialProvider,
    StaticModelConfigProvider,
)

__all__ = [
    "GenerationConfig",
    "ProviderSettings",
    "RetrySettings",
    "StageSettings",
    "LLMClientProto",
    "OpenAICompatibleClient",
    "CredentialProvider",
    "EnvCredentialProvider",
    "ModelConfig",
    "ModelConfigProvider",
    "StaticCredentialProvider",
    "StaticModelConfigProvider",
]
