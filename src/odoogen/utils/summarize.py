from __future__ import annotations

from typing import Optional

TRUNCATION_NOTE = "\n... (truncated)"


def summarize(text: Optional[str], limit: Optional[int] = 800) -> str:
    """Trim ``text`` to ``limit`` characters, cutting on a line boundary when one is close.

    ``limit=None`` returns the stripped text unchanged.
    """
    if not text:
        return ""
    text = text.strip()
    if limit is None or len(text) <= limit:
        return text
    cut = text[:limit]
    newline = cut.rfind("\n")
    if newline >= limit // 2:
        cut = cut[:newline]
    return cut.rstrip() + TRUNCATION_NOTE


__all__ = ["summarize", "TRUNCATION_NOTE"]
