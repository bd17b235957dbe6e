from __future__ import annotations

import logging
import posixpath
import re
from typing import Optional

from .json_repair import strip_wrappers

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 20

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
PY_CODING_LINE = "# -*- coding: utf-8 -*-"

# C0/C1 controls (tab and newline kept), zero-width and bidi marks
_CONTROL_CHARS_RE = re.compile(
    "[\\x00-\\x08\\x0b\\x0c\\x0e-\\x1f\\x7f\\u0080-\\u009f"
    "\\u200b-\\u200f\\u202a-\\u202e\\u2060\\u2066-\\u2069\\ufeff]"
)
_CTRL_TOKEN_RE = re.compile(r"<ctrl\d+>", re.IGNORECASE)
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_CODING_RE = re.compile(r"^#.*coding[:=]", re.MULTILINE)

# (label, pattern) pairs screened after cleaning; first match wins.
_DANGEROUS_PATTERNS = [
    ("PHP execution code", re.compile(r"<\?php", re.IGNORECASE)),
    ("embedded script tag", re.compile(r"<script\b", re.IGNORECASE)),
    ("destructive shell command", re.compile(r"\brm\s+-rf\b")),
    # safe_eval( and friends are fine
    ("dynamic code execution", re.compile(r"(?<![\w.])eval\s*\(")),
]


def _apparent_type(path: Optional[str], content: str) -> str:
    if path:
        ext = posixpath.splitext(path)[1].lower()
        if ext in (".xml", ".html"):
            return "xml"
        if ext in (".js", ".css", ".scss"):
            return "block"
        if ext:
            return "hash"
    return "xml" if content.lstrip().startswith("<") else "hash"


def _comment_stub(lines: list[str], kind: str) -> str:
    if kind == "xml":
        body = "\n".join(f"    {line}" if line else "" for line in lines)
        return f"{XML_DECLARATION}\n<odoo>\n    <!--\n{body}\n    -->\n</odoo>\n"
    if kind == "block":
        body = "\n".join(f" * {line}".rstrip() for line in lines)
        return f"/*\n{body}\n */\n"
    return "\n".join(f"# {line}".rstrip() for line in lines) + "\n"


def empty_placeholder(path: Optional[str] = None, content: str = "") -> str:
    lines = [
        "WARNING: generation produced empty or minimal content for this file.",
        f"File: {path}" if path else "File: unknown",
        "",
        "Suggested next steps:",
        "1. Regenerate this file on its own with a more specific request.",
        "2. Break the requirements into smaller tasks.",
        "3. Try a different model or provider.",
        "4. Implement the file by hand from the generated specifications.",
    ]
    return _comment_stub(lines, _apparent_type(path, content))


def security_placeholder(label: str, path: Optional[str] = None, content: str = "") -> str:
    lines = [
        "SECURITY FILTER ACTIVATED",
        f"Blocked content: {label}",
        f"File: {path}" if path else "File: unknown",
        "",
        "Review the model response before implementing this file by hand.",
    ]
    return _comment_stub(lines, _apparent_type(path, content))


def detect_dangerous_content(content: str) -> Optional[str]:
    for label, rx in _DANGEROUS_PATTERNS:
        if rx.search(content):
            return label
    return None


def _ensure_declarations(cleaned: str, path: Optional[str] = None) -> str:
    if cleaned.lstrip().startswith("<"):
        if "<odoo" in cleaned and not cleaned.lstrip().startswith("<?xml"):
            cleaned = f"{XML_DECLARATION}\n{cleaned}"
        return cleaned
    if path and posixpath.splitext(path)[1].lower() != ".py":
        return cleaned
    if "from odoo" in cleaned or "odoo." in cleaned:
        head = "\n".join(cleaned.split("\n")[:2])
        if not _CODING_RE.search(head):
            cleaned = f"{PY_CODING_LINE}\n{cleaned}"
    return cleaned


def clean_file_content(raw: str, path: Optional[str] = None) -> str:
    """Strip wrapper artifacts from a generated file body.

    Never returns an empty string: implausibly short output becomes a
    comment-only placeholder, and content carrying unrelated executable
    payloads becomes a security notice. ``path`` picks the comment syntax
    for those placeholders and limits the coding line to Python files.
    """
    if not isinstance(raw, str):
        logger.warning("clean_file_content: expected str, got %s", type(raw).__name__)
        return empty_placeholder(path)

    cleaned = raw.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = strip_wrappers(cleaned)
    cleaned = _CONTROL_CHARS_RE.sub("", cleaned)
    cleaned = _CTRL_TOKEN_RE.sub("", cleaned)
    cleaned = _TRAILING_WS_RE.sub("", cleaned)
    cleaned = cleaned.strip("\n")

    if len(cleaned.strip()) < MIN_CONTENT_CHARS:
        logger.warning("Content too short after cleaning (%d chars) for %s", len(cleaned), path)
        return empty_placeholder(path, cleaned)

    label = detect_dangerous_content(cleaned)
    if label is not None:
        logger.warning("Blocked generated content for %s: %s", path, label)
        return security_placeholder(label, path, cleaned)

    cleaned = _ensure_declarations(cleaned, path)
    return cleaned + "\n"


__all__ = [
    "MIN_CONTENT_CHARS",
    "XML_DECLARATION",
    "PY_CODING_LINE",
    "clean_file_content",
    "detect_dangerous_content",
    "empty_placeholder",
    "security_placeholder",
]
