from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..types import Stage
from ..utils.errors import Err, OGError
from ..utils.module_name import is_valid_module_name


@dataclass(frozen=True)
class GenerationRequest:
    """One user request. Immutable once the pipeline starts."""

    prompt: str
    version: str
    module_name: str
    target_files: Tuple[str, ...] = ()
    skip_validation: bool = False

    def __post_init__(self) -> None:
        # Accept any iterable for target_files while staying hashable.
        object.__setattr__(self, "target_files", tuple(self.target_files or ()))

    @property
    def targeted(self) -> bool:
        return bool(self.target_files)

    def validate(self) -> None:
        if not (isinstance(self.prompt, str) and self.prompt.strip()):
            raise OGError(Err.INVALID_REQUEST, ctx={"reason": "empty_prompt"})
        if not (isinstance(self.version, str) and self.version.strip()):
            raise OGError(Err.INVALID_REQUEST, ctx={"reason": "missing_version"})
        if not is_valid_module_name(self.module_name):
            raise OGError(
                Err.INVALID_REQUEST,
                ctx={"reason": "invalid_module_name", "module_name": self.module_name},
            )


@dataclass(frozen=True)
class ValidationResult:
    is_odoo_request: bool
    reason: str
    source: str = "structured"  # "structured" | "heuristic" | "override" | "skipped"


@dataclass(frozen=True)
class StageArtifact:
    """Opaque text produced by one stage; only used as context for later prompts."""

    stage: Stage
    raw_text: str
    truncated_preview: str


@dataclass
class GenerationResult:
    files: Dict[str, str]
    summary: str
    stats: Dict[str, Any] = field(default_factory=dict)
    specifications: Optional[str] = None
    tasks: Optional[str] = None
    menu: Optional[str] = None


__all__ = ["GenerationRequest", "ValidationResult", "StageArtifact", "GenerationResult"]
