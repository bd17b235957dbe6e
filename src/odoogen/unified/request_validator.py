from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..resources.generation_config import GenerationConfig
from ..resources.llm_client import LLMClientProto
from ..utils.json_repair import cap_reason, coerce_validation_payload, parse_json_lenient
from .envelopes import ValidationResult
from .session import GenerationSession
from .stage_raw import call_stage

logger = logging.getLogger(__name__)

DOMAIN_KEYWORDS = (
    "odoo", "module", "model", "view", "menu", "field", "inherit",
    "ir.model", "odoo erp", "res.model", "odoo.com", "odoo module",
)
NON_DOMAIN_KEYWORDS = (
    "javascript", "react", "node", "web app", "website", "frontend",
    "css", "html", "database", "sql", "api endpoint",
)
AFFIRMATIVE_PHRASES = ("true", "yes", "valid", "recognized", "odoo", "module", "confirmed")
NEGATIVE_PHRASES = ("false", "no", "not", "invalid", "unrecognized", "not odoo")

# Negated mentions of the platform are removed before positive counting.
_NEGATED_DOMAIN_RE = re.compile(
    r"\b(?:not(?: an?)?(?: related to)?|non-?|isn't|is not|no)\s*odoo\b", re.IGNORECASE
)
_PLATFORM_RE = re.compile(r"\bodoo\b", re.IGNORECASE)
# Tolerates common misspellings of "module".
_MODULE_TERM_RE = re.compile(
    r"\b(?:mod(?:ule|ul|ue|le|lue|uel)s?|moudles?|moduels?|add-?ons?)\b", re.IGNORECASE
)

ACCEPT_SCORE = 2


@dataclass(frozen=True)
class HeuristicScore:
    domain: int
    non_domain: int
    affirmative: int
    negative: int

    @property
    def total(self) -> int:
        return (self.domain - self.non_domain) + (self.affirmative - self.negative)

    @property
    def accepted(self) -> bool:
        if self.total >= ACCEPT_SCORE:
            return True
        # platform-heavy answer with a positive tone
        if self.domain >= 2 and self.affirmative > self.negative:
            return True
        return -1 <= self.total <= 1 and self.domain >= 1


def _count(terms: tuple[str, ...], text: str) -> int:
    return sum(1 for t in terms if re.search(rf"(?<![\w.]){re.escape(t)}(?![\w])", text))


def score_text(text: str) -> HeuristicScore:
    """Keyword/sentiment score of a free-text classification. Approximate by nature."""
    lower = (text or "").lower()
    positive_view = _NEGATED_DOMAIN_RE.sub(" ", lower)
    return HeuristicScore(
        domain=_count(DOMAIN_KEYWORDS, positive_view),
        non_domain=_count(NON_DOMAIN_KEYWORDS, lower),
        affirmative=_count(AFFIRMATIVE_PHRASES, positive_view),
        negative=_count(NEGATIVE_PHRASES, lower),
    )


def heuristic_validation(text: str) -> ValidationResult:
    score = score_text(text)
    verdict = "accepted" if score.accepted else "rejected"
    reason = (
        f"Fallback classification {verdict} (score {score.total}): {score.domain} domain terms "
        f"vs {score.non_domain} general terms, {score.affirmative} affirmative vs {score.negative} negative."
    )
    return ValidationResult(is_odoo_request=score.accepted, reason=reason, source="heuristic")


def names_platform_module(prompt: str) -> bool:
    """True when the request literally names Odoo and a module-like term."""
    return bool(_PLATFORM_RE.search(prompt or "")) and bool(_MODULE_TERM_RE.search(prompt or ""))


def parse_structured(raw: str, *, reason_cap: int) -> Optional[ValidationResult]:
    payload = parse_json_lenient(raw, default=None)
    if not isinstance(payload, dict) or not ({"is_odoo_request", "intent"} & set(payload)):
        return None
    data = coerce_validation_payload(payload, context_text=raw, reason_cap=reason_cap)
    return ValidationResult(is_odoo_request=data["is_odoo_request"], reason=data["reason"])


def validate_request(
    llm: LLMClientProto,
    session: GenerationSession,
    *,
    config: GenerationConfig,
) -> ValidationResult:
    request = session.request
    session.emit("validation.start", module_name=request.module_name, version=request.version)

    artifact = call_stage(llm, "validation", {"prompt": request.prompt}, config=config)
    session.artifacts["validation"] = artifact

    result = parse_structured(artifact.raw_text, reason_cap=config.reason_cap)
    if result is not None:
        session.emit("validation.success", is_odoo_request=result.is_odoo_request, reason=result.reason)
    else:
        logger.warning("Validation response had no usable JSON; using keyword fallback")
        result = heuristic_validation(artifact.raw_text)

    if not result.is_odoo_request and names_platform_module(request.prompt):
        logger.info("Request names Odoo and a module explicitly; overriding rejection")
        result = ValidationResult(
            is_odoo_request=True,
            reason=cap_reason(f"Explicit Odoo module request (model said: {result.reason})", config.reason_cap),
            source="override",
        )

    kind = "validation.passed" if result.is_odoo_request else "validation.failed"
    session.emit(kind, is_odoo_request=result.is_odoo_request, reason=result.reason, source=result.source)
    return result


__all__ = [
    "HeuristicScore",
    "score_text",
    "heuristic_validation",
    "names_platform_module",
    "parse_structured",
    "validate_request",
]
