from __future__ import annotations

"""
Extraction and repair of JSON embedded in LLM output.

Model responses wrap JSON in markdown fences, lead in with prose, and use
JavaScript/Python-ish literal syntax. The helpers here are pure and never
raise; on total failure they fall back to a value the caller can use.

Pipeline:
    raw text --extract_json_text--> candidate --repair_json--> json text
"""

import json
import re
from typing import Any, Callable, List, Optional, Tuple

DEFAULT_REASON_CAP = 500
TRUNCATION_MARKER = "... (truncated)"

_FENCE_RE = re.compile(r"```[ \t]*([A-Za-z0-9_+-]*)[ \t]*\n?(.*?)(?:```|$)", re.DOTALL)

_PREFIX_PATTERNS = [
    re.compile(r"^\s*Generated (?:file content|JSON)\s*:?\s*", re.IGNORECASE),
    re.compile(r"^\s*Here is the (?:complete |updated |final )?(?:content|file|JSON|response)\s*:?\s*", re.IGNORECASE),
    re.compile(r"^\s*File content for[^\n:]*:\s*", re.IGNORECASE),
    re.compile(r"^\s*---\s*File[^\n]*?---\s*", re.IGNORECASE),
    re.compile(r"^\s*(?:Response|Output|Result)\s*:\s*", re.IGNORECASE),
    re.compile(r"^\s*\[JSON\]\s*", re.IGNORECASE),
]
_SUFFIX_PATTERNS = [
    re.compile(r"\s*---\s*End[^\n]*?---\s*$", re.IGNORECASE),
]

_FLAT_OBJECT_RE = re.compile(r"\{[^{}]*\}", re.DOTALL)
_FLAT_ARRAY_RE = re.compile(r"\[[^\[\]]*\]", re.DOTALL)

_JSON_ESCAPES = frozenset('"\\/bfnrtu')
_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}": "{", "]": "["}


def _is_lead_in(text: str) -> bool:
    """True when ``text`` is empty or only a known lead-in phrase."""
    for rx in _PREFIX_PATTERNS:
        text = rx.sub("", text, count=1)
    return not text.strip()


def strip_wrappers(text: str) -> str:
    """Remove markdown fences and known lead-in/trailer phrases.

    A fenced block is unwrapped only when it opens the text, or follows a
    known lead-in; fences further down belong to the content itself.
    """
    if not isinstance(text, str):
        return ""
    cleaned = text.replace("\r\n", "\n").strip()
    m = _FENCE_RE.search(cleaned)
    if m and m.group(2).strip() and _is_lead_in(cleaned[: m.start()]):
        cleaned = m.group(2).strip()
    for rx in _PREFIX_PATTERNS:
        cleaned = rx.sub("", cleaned, count=1)
    for rx in _SUFFIX_PATTERNS:
        cleaned = rx.sub("", cleaned, count=1)
    return cleaned.strip()


def _balanced_span(text: str, start: int) -> Optional[int]:
    """Return the end index (exclusive) of the structure opened at ``start``."""
    braces = 0
    brackets = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            braces += 1
        elif ch == "}":
            braces -= 1
        elif ch == "[":
            brackets += 1
        elif ch == "]":
            brackets -= 1
        if braces < 0 or brackets < 0:
            return None
        if braces == 0 and brackets == 0:
            return i + 1
    return None


def extract_json_text(raw: str) -> str:
    """Pull the first balanced JSON object or array out of noisy text.

    Falls back to a flat (non-nested) regex match, and finally to the
    wrapper-stripped text itself.
    """
    try:
        cleaned = strip_wrappers(raw)
        positions = [p for p in (cleaned.find("{"), cleaned.find("[")) if p >= 0]
        for start in sorted(positions):
            end = _balanced_span(cleaned, start)
            if end is not None:
                return cleaned[start:end]
        for rx in (_FLAT_OBJECT_RE, _FLAT_ARRAY_RE):
            m = rx.search(cleaned)
            if m:
                return m.group(0)
        return cleaned
    except Exception:
        return raw if isinstance(raw, str) else ""


# ---- Repair ----

Segment = Tuple[bool, str]  # (is_string_literal, text)


def _string_can_open(text: str, pos: int) -> bool:
    j = pos - 1
    while j >= 0 and text[j].isspace():
        j -= 1
    return j < 0 or text[j] in "{[,:"


def _split_segments(text: str) -> List[Segment]:
    segments: List[Segment] = []
    buf: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"' or (ch == "'" and _string_can_open(text, i)):
            if buf:
                segments.append((False, "".join(buf)))
                buf = []
            quote = ch
            j = i + 1
            escaped = False
            while j < n:
                c = text[j]
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == quote:
                    break
                j += 1
            body = text[i + 1 : j]
            segments.append((True, _as_json_string(body, quote)))
            i = j + 1
            continue
        buf.append(ch)
        i += 1
    if buf:
        segments.append((False, "".join(buf)))
    return segments


def _as_json_string(body: str, quote: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            if nxt == "'":
                # \' is not a JSON escape
                out.append("'")
            elif nxt in _JSON_ESCAPES and (nxt != "u" or _HEX4_RE.match(body, i + 2)):
                out.append(ch + nxt)
            else:
                out.append("\\\\" + nxt)
            i += 2
            continue
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"' and quote == "'":
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        else:
            out.append(ch)
        i += 1
    return '"' + "".join(out) + '"'


_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_MISSING_COMMA_RE = re.compile(r"([}\]])\s*([{\[])")
_COLON_RE = re.compile(r"\s*:\s*")
_COMMA_RE = re.compile(r"\s*,\s*")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][\w\-]*)(\s*:)")
_PY_LITERALS = {"True": "true", "False": "false", "None": "null"}
_PY_LITERAL_RE = re.compile(r"\b(True|False|None)\b")


def _strip_trailing_commas(seg: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", seg)


def _insert_missing_commas(seg: str) -> str:
    return _MISSING_COMMA_RE.sub(r"\1, \2", seg)


def _normalize_spacing(seg: str) -> str:
    return _COMMA_RE.sub(", ", _COLON_RE.sub(": ", seg))


def _quote_bare_keys(seg: str) -> str:
    return _BARE_KEY_RE.sub(r'\1"\2"\3', seg)


def _python_literals(seg: str) -> str:
    return _PY_LITERAL_RE.sub(lambda m: _PY_LITERALS[m.group(1)], seg)


_STRUCTURAL_STEPS: List[Callable[[str], str]] = [
    _strip_trailing_commas,
    _insert_missing_commas,
    _normalize_spacing,
    _quote_bare_keys,
    _python_literals,
]


def _close_unbalanced(text: str) -> str:
    stack: List[str] = []
    for is_str, seg in _split_segments(text):
        if is_str:
            continue
        for ch in seg:
            if ch in _OPENERS:
                stack.append(ch)
            elif ch in _CLOSERS and stack and stack[-1] == _CLOSERS[ch]:
                stack.pop()
    if not stack:
        return text
    closing = "".join(_OPENERS[ch] for ch in reversed(stack))
    return _strip_trailing_commas(text.rstrip() + closing)


def _loads(text: str) -> Any:
    return json.loads(text)


def repair_json(text: str) -> str:
    """Heal common JSON malformations. Never raises.

    String literals are normalized to double quotes first; the structural
    fixes then only touch text outside string literals.
    """
    if not isinstance(text, str) or not text.strip():
        return text if isinstance(text, str) else ""
    try:
        segments = _split_segments(text.strip())
        for step in _STRUCTURAL_STEPS:
            segments = [(s, t if s else step(t)) for s, t in segments]
        repaired = "".join(t for _s, t in segments)
        try:
            _loads(repaired)
            return repaired
        except ValueError:
            return _close_unbalanced(repaired)
    except Exception:
        return text


def parse_json_lenient(raw: str, default: Any = None) -> Any:
    """Extract, repair and decode; return ``default`` when nothing decodes."""
    try:
        return _loads(repair_json(extract_json_text(raw)))
    except Exception:
        return default


# ---- Validation schema ----

_TRUE_STRINGS = {"true", "yes", "y", "1", "on"}
_FALSE_STRINGS = {"false", "no", "n", "0", "off"}

_NEGATIVE_PHRASES = [
    "not odoo",
    "non-odoo",
    "isn't odoo",
    "no odoo",
    "not an odoo",
    "not related to odoo",
    "not odoo-specific",
    "not specific to odoo",
]
_POSITIVE_PHRASES = [
    "for odoo",
    "odoo module",
    "recognized as odoo",
    "odoo-specific request",
    "odoo request detected",
]
_EXPLICIT_FALSE_RE = re.compile(r"[\"']?is_odoo_request[\"']?\s*:\s*(false|0|\"false\")", re.IGNORECASE)


def coerce_bool(value: Any) -> Optional[bool]:
    """Map boolean-like values to a real bool, or None when undecidable."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_STRINGS:
            return True
        if token in _FALSE_STRINGS:
            return False
    return None


def infer_odoo_from_text(text: str) -> bool:
    lower = (text or "").lower()
    if _EXPLICIT_FALSE_RE.search(lower):
        return False
    has_neg = any(p in lower for p in _NEGATIVE_PHRASES)
    has_pos = any(p in lower for p in _POSITIVE_PHRASES)
    return has_pos or ("odoo" in lower and not has_neg)


def cap_reason(reason: str, cap: int = DEFAULT_REASON_CAP) -> str:
    if len(reason) <= cap:
        return reason
    return reason[:cap] + TRUNCATION_MARKER


def coerce_validation_payload(
    payload: dict, *, context_text: str = "", reason_cap: int = DEFAULT_REASON_CAP
) -> dict:
    """Return ``payload`` with a real bool ``is_odoo_request`` and a string ``reason``."""
    is_odoo = coerce_bool(payload.get("is_odoo_request"))
    intent = payload.get("intent")
    if is_odoo is None and isinstance(intent, str) and intent.strip():
        is_odoo = intent.strip().lower() == "module_generate"
    if is_odoo is None:
        is_odoo = infer_odoo_from_text(context_text)

    reason = payload.get("reason")
    if isinstance(reason, str) and reason.strip():
        reason_text = reason.strip()
    elif reason is None or reason == "":
        reason_text = (
            "Request recognized as Odoo module development based on content analysis"
            if is_odoo
            else "Request does not appear to be Odoo-specific"
        )
    elif isinstance(reason, (dict, list)):
        reason_text = json.dumps(reason, ensure_ascii=False)
    else:
        reason_text = str(reason)

    out = {"is_odoo_request": bool(is_odoo), "reason": cap_reason(reason_text, reason_cap)}
    if isinstance(intent, str) and intent.strip():
        out["intent"] = intent.strip()
    return out


def repair_validation_json(text: str, *, reason_cap: int = DEFAULT_REASON_CAP) -> str:
    """Repair a validation response; the result always decodes to an object
    holding ``is_odoo_request`` (bool) and ``reason`` (str)."""
    try:
        payload = parse_json_lenient(text, default=None)
        if not isinstance(payload, dict):
            payload = {}
        return json.dumps(
            coerce_validation_payload(payload, context_text=str(text or ""), reason_cap=reason_cap),
            ensure_ascii=False,
        )
    except Exception:
        return json.dumps({"is_odoo_request": False, "reason": "Unable to parse validation response"})


__all__ = [
    "DEFAULT_REASON_CAP",
    "TRUNCATION_MARKER",
    "strip_wrappers",
    "extract_json_text",
    "repair_json",
    "parse_json_lenient",
    "coerce_bool",
    "infer_odoo_from_text",
    "cap_reason",
    "coerce_validation_payload",
    "repair_validation_json",
]
