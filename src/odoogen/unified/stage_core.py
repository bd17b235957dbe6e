from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, StrictUndefined, TemplateError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..resources.generation_config import RetrySettings, StageSettings
from ..resources.llm_client import LLMClientProto
from ..types import Stage
from ..utils.errors import Err, OGError, is_retryable_error

logger = logging.getLogger(__name__)

_JINJA = Environment(undefined=StrictUndefined, keep_trailing_newline=True)

TEMPLATES_ROOT = Path(__file__).resolve().parent.parent / "templates"


def render_template(
    stage: Stage,
    template_id: str,
    values: Dict[str, Any],
    *,
    templates_root: Optional[Path] = None,
) -> str:
    path = Path(templates_root or TEMPLATES_ROOT) / stage / f"{template_id}.txt"
    if not path.exists():
        raise OGError(
            Err.MISSING_TEMPLATE,
            ctx={"stage": stage, "template_id": template_id, "path": str(path)},
        )
    try:
        tpl = _JINJA.from_string(path.read_text(encoding="utf-8"))
        return tpl.render(**values)
    except TemplateError as exc:
        raise OGError(
            Err.MISSING_TEMPLATE,
            ctx={"stage": stage, "template_id": template_id, "reason": "render_failed"},
            cause=exc,
        )


def retrying(retry: RetrySettings) -> Retrying:
    """Bounded exponential backoff applied only to transient provider failures."""
    return Retrying(
        stop=stop_after_attempt(retry.attempts),
        wait=wait_exponential(
            multiplier=retry.base_delay_s,
            min=retry.base_delay_s,
            max=retry.max_delay_s,
        ),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def complete_with_retry(
    llm: LLMClientProto,
    prompt: str,
    *,
    retry: RetrySettings,
    system_instruction: Optional[str] = None,
    response_format_hint: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> str:
    raw = retrying(retry)(
        llm.complete,
        prompt,
        system_instruction=system_instruction,
        response_format_hint=response_format_hint,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return str(raw or "").replace("\r\n", "\n")


def validate_result(stage: Stage, raw_text: str, settings: StageSettings) -> None:
    min_lines = settings.min_lines
    if isinstance(min_lines, int) and min_lines > 0:
        count = sum(1 for ln in raw_text.splitlines() if ln.strip())
        if count < min_lines:
            raise OGError(
                Err.PARSER_FAILURE,
                ctx={"stage": stage, "reason": "insufficient_lines", "min_lines": min_lines, "lines": count},
            )


def preview(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


__all__ = [
    "TEMPLATES_ROOT",
    "render_template",
    "retrying",
    "complete_with_retry",
    "validate_result",
    "preview",
]
