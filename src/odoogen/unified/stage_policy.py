from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from ..types import Stage
from ..utils.errors import Err, OGError


@dataclass(frozen=True)
class StageSpec:
    """Static description of one LLM stage.

    response_format: "json" asks the provider for a JSON object, "text" for free text.
    """

    stage: Stage
    system_instruction: str
    required_values: tuple[str, ...]
    response_format: str = "text"


_SYSTEM_ODOO = "You are an expert Odoo developer and business analyst."

_SPECS: Dict[Stage, StageSpec] = {
    "validation": StageSpec(
        stage="validation",
        system_instruction="You classify developer requests. Reply with strict JSON only.",
        required_values=("prompt",),
        response_format="json",
    ),
    "specification": StageSpec(
        stage="specification",
        system_instruction=_SYSTEM_ODOO,
        required_values=("prompt", "version", "module_name"),
    ),
    "tasks": StageSpec(
        stage="tasks",
        system_instruction=_SYSTEM_ODOO + " You plan implementation work as precise file checklists.",
        required_values=("specifications", "version", "module_name"),
    ),
    "menu": StageSpec(
        stage="menu",
        system_instruction=_SYSTEM_ODOO,
        required_values=("specifications", "tasks", "version", "module_name"),
    ),
    "file": StageSpec(
        stage="file",
        system_instruction=_SYSTEM_ODOO + " You output raw file content only.",
        required_values=("specifications", "tasks", "menu", "version", "module_name", "file_path", "task_line"),
    ),
    "fix": StageSpec(
        stage="fix",
        system_instruction=_SYSTEM_ODOO + " You repair files and output raw file content only.",
        required_values=("file_path", "content", "errors", "version"),
    ),
    "essential": StageSpec(
        stage="essential",
        system_instruction=_SYSTEM_ODOO + " You output raw file content only.",
        required_values=("file_path", "module_name", "version", "specifications", "files"),
    ),
    "summary": StageSpec(
        stage="summary",
        system_instruction="You write concise, entity-focused summaries.",
        required_values=("kind", "content"),
    ),
}


def get_stage_spec(stage: Stage) -> StageSpec:
    spec = _SPECS.get(stage)
    if spec is None:
        raise OGError(Err.INVALID_CONFIG, ctx={"reason": "unknown_stage", "stage": stage})
    return spec


def check_required_values(stage: Stage, values: Dict[str, object]) -> None:
    missing = [k for k in get_stage_spec(stage).required_values if k not in values]
    if missing:
        raise OGError(
            Err.INVALID_REQUEST,
            ctx={"reason": "missing_prompt_values", "stage": stage, "missing": missing},
        )


__all__ = ["StageSpec", "get_stage_spec", "check_required_values"]
