from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

_UNCHECKED_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s*\[ \]")
_CHECKBOX_RE = re.compile(r"\[ \]")
_BACKTICK_RE = re.compile(r"`([^`\n]+)`")
_EXT_RE = re.compile(r"\.[A-Za-z0-9]+$")


@dataclass(frozen=True)
class FileTask:
    line_index: int
    line: str
    raw_path: str


def _path_tokens(line: str) -> List[str]:
    tokens = [t.strip() for t in _BACKTICK_RE.findall(line)]
    return [t for t in tokens if ("/" in t or "\\" in t) and _EXT_RE.search(t)]


def extract_path(line: str) -> Optional[str]:
    """Return the single back-quoted file path in ``line``, or None.

    Lines naming zero or several paths are not file tasks.
    """
    tokens = _path_tokens(line)
    return tokens[0] if len(tokens) == 1 else None


def parse_file_tasks(tasks_text: str) -> List[FileTask]:
    """Unchecked checklist lines that name exactly one file path, in order."""
    out: List[FileTask] = []
    for idx, line in enumerate((tasks_text or "").splitlines()):
        if not _UNCHECKED_RE.match(line):
            continue
        path = extract_path(line)
        if path is not None:
            out.append(FileTask(line_index=idx, line=line.strip(), raw_path=path))
    return out


def mark_task_complete(tasks_text: str, line_index: int) -> str:
    lines = (tasks_text or "").split("\n")
    if 0 <= line_index < len(lines):
        lines[line_index] = _CHECKBOX_RE.sub("[x]", lines[line_index], count=1)
    return "\n".join(lines)


__all__ = ["FileTask", "extract_path", "parse_file_tasks", "mark_task_complete"]
