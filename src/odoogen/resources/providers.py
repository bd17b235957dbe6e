from __future__ import annotations

"""
Narrow interfaces for process-wide settings read at call time.

The LLM client asks these for the API key and the active model instead of
reading ambient state, so tests can inject fixed values.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol


@dataclass(frozen=True)
class ModelConfig:
    model: str
    base_url: str


class CredentialProvider(Protocol):
    def get_api_key(self) -> Optional[str]:  # pragma: no cover - protocol only
        ...


class ModelConfigProvider(Protocol):
    def get_model_config(self) -> ModelConfig:  # pragma: no cover - protocol only
        ...


class EnvCredentialProvider:
    """Read the API key from an environment variable on every call."""

    def __init__(self, var_name: str = "OPENROUTER_API_KEY", env: Optional[Mapping[str, str]] = None):
        self.var_name = var_name
        self._env = env

    def get_api_key(self) -> Optional[str]:
        env = os.environ if self._env is None else self._env
        value = env.get(self.var_name)
        return value.strip() if isinstance(value, str) and value.strip() else None


class StaticCredentialProvider:
    def __init__(self, api_key: Optional[str]):
        self._api_key = api_key

    def get_api_key(self) -> Optional[str]:
        return self._api_key


class StaticModelConfigProvider:
    def __init__(self, model: str, base_url: str):
        self._config = ModelConfig(model=model, base_url=base_url)

    def get_model_config(self) -> ModelConfig:
        return self._config


__all__ = [
    "ModelConfig",
    "CredentialProvider",
    "ModelConfigProvider",
    "EnvCredentialProvider",
    "StaticCredentialProvider",
    "StaticModelConfigProvider",
]
