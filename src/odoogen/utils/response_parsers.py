from __future__ import annotations

"""
Provider response-shape parsers.

Each parser takes a decoded response payload (dict/list/str) and returns
the generated text, or None when the payload is not of its shape. Parsers
are tried in registration order; ``extract_response_text`` falls back to a
generic best-path search over the payload.
"""

from typing import Any, Callable, Dict, Iterable, Optional

from .errors import OGError, Err

ShapeParser = Callable[[Any], Optional[str]]

_REGISTRY: Dict[str, ShapeParser] = {}

# Keys searched by the generic fallback, most specific first.
_TEXT_KEYS = ("content", "text", "output_text", "completion", "response", "message")


def register_shape_parser(name: str, fn: ShapeParser) -> None:
    if not isinstance(name, str) or not name.strip():
        raise OGError(Err.INVALID_CONFIG, ctx={"reason": "empty_parser_name"})
    _REGISTRY[name.strip()] = fn


def get_shape_parser(name: str) -> Optional[ShapeParser]:
    if not isinstance(name, str):
        return None
    return _REGISTRY.get(name.strip())


def list_shape_parsers() -> Dict[str, ShapeParser]:
    return dict(_REGISTRY)


def _first(seq: Any) -> Any:
    if isinstance(seq, (list, tuple)) and seq:
        return seq[0]
    return None


def _join_text_parts(parts: Iterable[Any], key: str = "text") -> Optional[str]:
    texts = [p.get(key) for p in parts if isinstance(p, dict) and isinstance(p.get(key), str)]
    return "".join(texts) if texts else None


def _parse_openai_chat(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    choice = _first(payload.get("choices"))
    message = choice.get("message") if isinstance(choice, dict) else None
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if content is None:
        # empty or refused completion
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return _join_text_parts(content) or ""
    return None


def _parse_openai_completion(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    choice = _first(payload.get("choices"))
    if isinstance(choice, dict) and isinstance(choice.get("text"), str):
        return choice["text"]
    return None


def _parse_anthropic(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict) or payload.get("type") not in (None, "message"):
        return None
    content = payload.get("content")
    if isinstance(content, list):
        return _join_text_parts(c for c in content if isinstance(c, dict) and c.get("type", "text") == "text")
    return None


def _parse_gemini(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    candidate = _first(payload.get("candidates"))
    if not isinstance(candidate, dict):
        return None
    content = candidate.get("content")
    if isinstance(content, dict) and isinstance(content.get("parts"), list):
        return _join_text_parts(content["parts"])
    return None


def _parse_output_text(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("output_text"), str):
        return payload["output_text"]
    return None


def best_path_text(payload: Any, *, _depth: int = 0) -> Optional[str]:
    """Depth-first search for the first string under a known text key."""
    if _depth > 6:
        return None
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        for key in _TEXT_KEYS:
            value = payload.get(key)
            if isinstance(value, str):
                return value
        for value in payload.values():
            if isinstance(value, (dict, list)):
                found = best_path_text(value, _depth=_depth + 1)
                if found is not None:
                    return found
    if isinstance(payload, list):
        for item in payload:
            found = best_path_text(item, _depth=_depth + 1)
            if found is not None:
                return found
    return None


def extract_response_text(payload: Any) -> str:
    """Return the generated text from any known provider payload shape."""
    for _name, fn in _REGISTRY.items():
        text = fn(payload)
        if text is not None:
            return text
    text = best_path_text(payload)
    if text is None:
        raise OGError(Err.PARSER_FAILURE, ctx={"reason": "no_text_in_response"})
    return text


# ---- Built-in registrations ----

register_shape_parser("openai_chat", _parse_openai_chat)
register_shape_parser("openai_completion", _parse_openai_completion)
register_shape_parser("gemini", _parse_gemini)
register_shape_parser("anthropic", _parse_anthropic)
register_shape_parser("output_text", _parse_output_text)


__all__ = [
    "register_shape_parser",
    "get_shape_parser",
    "list_shape_parsers",
    "best_path_text",
    "extract_response_text",
]
