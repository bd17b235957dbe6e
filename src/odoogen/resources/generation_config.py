from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..types import STAGES, Stage
from ..utils.errors import Err, OGError


class StageSettings(BaseModel):
    """Per-stage configuration values.

    Attributes:
        max_tokens: Upper bound for the completion (None = provider default)
        temperature: Sampling temperature (None = provider default)
        min_lines: Minimum non-empty lines the raw response must have (None = no check)
        template_id: Prompt template under templates/<stage>/ (default: "default")
    """

    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    min_lines: Optional[int] = None
    template_id: str = "default"


class ProviderSettings(BaseModel):
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "openai/gpt-4o-mini"
    api_key_env: str = "OPENROUTER_API_KEY"
    timeout_s: float = 120.0
    # Proactive pacing; reactive retries live in the stage callers.
    rate_limit_calls: int = 60
    rate_limit_period: int = 60


class RetrySettings(BaseModel):
    attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=1.0, ge=0)
    max_delay_s: float = Field(default=4.0, ge=0)


def _default_stage_config() -> Dict[str, StageSettings]:
    return {
        "validation": StageSettings(max_tokens=512, temperature=0.0),
        "specification": StageSettings(max_tokens=4096, temperature=0.3, min_lines=3),
        "tasks": StageSettings(max_tokens=4096, temperature=0.2, min_lines=2),
        "menu": StageSettings(max_tokens=4096, temperature=0.2),
        "file": StageSettings(max_tokens=8192, temperature=0.2),
        "fix": StageSettings(max_tokens=8192, temperature=0.0),
        "essential": StageSettings(max_tokens=4096, temperature=0.1),
        "summary": StageSettings(max_tokens=512, temperature=0.0),
    }


class GenerationConfig(BaseModel):
    """Pipeline configuration. Loadable from YAML; see ``from_yaml``."""

    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    stage_config: Dict[str, StageSettings] = Field(default_factory=_default_stage_config)
    auto_fix: bool = True
    essential_files: bool = True
    reason_cap: int = 500
    preview_chars: int = 600
    file_context_chars: Optional[int] = None
    summarize_context: bool = False

    def stage_settings(self, stage: Stage) -> StageSettings:
        return self.stage_config.get(stage) or StageSettings()

    @classmethod
    def from_yaml(cls, path: str | Path, *, env: Optional[Dict[str, str]] = None) -> "GenerationConfig":
        p = Path(path)
        try:
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except FileNotFoundError as exc:
            raise OGError(Err.INVALID_CONFIG, ctx={"reason": "config_not_found", "path": str(p)}, cause=exc)
        except yaml.YAMLError as exc:
            raise OGError(Err.INVALID_CONFIG, ctx={"reason": "config_yaml_error", "path": str(p)}, cause=exc)
        if not isinstance(data, dict):
            raise OGError(Err.INVALID_CONFIG, ctx={"reason": "config_not_mapping", "path": str(p)})
        return cls.from_mapping(data, env=env)

    @classmethod
    def from_mapping(cls, data: Dict, *, env: Optional[Dict[str, str]] = None) -> "GenerationConfig":
        stages = data.get("stage_config") or {}
        unknown = sorted(set(stages) - set(STAGES))
        if unknown:
            raise OGError(Err.INVALID_CONFIG, ctx={"reason": "unknown_stage", "stages": unknown})
        merged = dict(data)
        if stages:
            # Partial stage overrides are layered over the defaults.
            base = {k: v.model_dump() for k, v in _default_stage_config().items()}
            for name, values in stages.items():
                base[name] = {**base.get(name, {}), **(values or {})}
            merged["stage_config"] = base
        try:
            cfg = cls.model_validate(merged)
        except ValidationError as exc:
            raise OGError(Err.INVALID_CONFIG, ctx={"reason": "config_invalid", "errors": exc.errors()}, cause=exc)
        return cfg.with_env_overrides(env)

    def with_env_overrides(self, env: Optional[Dict[str, str]] = None) -> "GenerationConfig":
        env = os.environ if env is None else env
        updates = {}
        if env.get("ODOOGEN_MODEL"):
            updates["model"] = env["ODOOGEN_MODEL"]
        if env.get("ODOOGEN_BASE_URL"):
            updates["base_url"] = env["ODOOGEN_BASE_URL"]
        if not updates:
            return self
        return self.model_copy(update={"provider": self.provider.model_copy(update=updates)})


__all__ = ["StageSettings", "ProviderSettings", "RetrySettings", "GenerationConfig"]
