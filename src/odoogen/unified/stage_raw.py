from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..resources.generation_config import GenerationConfig
from ..resources.llm_client import LLMClientProto
from ..types import Stage
from ..utils.summarize import summarize
from .envelopes import StageArtifact
from .stage_core import complete_with_retry, preview, render_template, validate_result
from .stage_policy import check_required_values, get_stage_spec

logger = logging.getLogger(__name__)


def call_stage(
    llm: LLMClientProto,
    stage: Stage,
    values: Dict[str, Any],
    *,
    config: GenerationConfig,
    templates_root: Optional[Path] = None,
) -> StageArtifact:
    """Render the stage prompt, make one retried LLM round trip, return the raw text."""
    spec = get_stage_spec(stage)
    settings = config.stage_settings(stage)
    check_required_values(stage, values)

    prompt = render_template(stage, settings.template_id, values, templates_root=templates_root)
    logger.info("Stage %s: sending prompt (%d chars)", stage, len(prompt))
    raw_text = complete_with_retry(
        llm,
        prompt,
        retry=config.retry,
        system_instruction=spec.system_instruction,
        response_format_hint=spec.response_format,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )
    validate_result(stage, raw_text, settings)
    return StageArtifact(
        stage=stage,
        raw_text=raw_text,
        truncated_preview=preview(raw_text, config.preview_chars),
    )


def summarize_artifact(
    llm: LLMClientProto,
    kind: str,
    text: str,
    *,
    config: GenerationConfig,
    limit: int = 800,
) -> str:
    """Condense a long artifact with one ``summary`` call; truncate on any failure."""
    if not text or len(text) < 400:
        return summarize(text, limit)
    try:
        artifact = call_stage(
            llm,
            "summary",
            {"kind": kind, "content": summarize(text, 2000)},
            config=config,
        )
    except Exception as exc:
        logger.warning("Summary of %s failed, falling back to truncation: %s", kind, exc)
        return summarize(text, limit)
    return summarize(" ".join(artifact.raw_text.split()), limit)


__all__ = ["call_stage", "summarize_artifact"]
