from __future__ import annotations

import ast
import csv
import io
import posixpath
import xml.etree.ElementTree as ET
from typing import Callable, Dict, List

Validator = Callable[[str], List[str]]


def validate_python(content: str) -> List[str]:
    try:
        ast.parse(content)
    except SyntaxError as exc:
        return [f"SyntaxError at line {exc.lineno}: {exc.msg}"]
    except ValueError as exc:
        return [f"Invalid source: {exc}"]
    return []


def validate_xml(content: str) -> List[str]:
    # ElementTree refuses str input carrying an encoding declaration
    try:
        ET.fromstring(content.encode("utf-8"))
    except ET.ParseError as exc:
        return [f"XML parse error: {exc}"]
    return []


def validate_csv(content: str) -> List[str]:
    lines = [ln for ln in content.splitlines() if ln.strip() and not ln.lstrip().startswith("#")]
    if not lines:
        return []
    header = next(csv.reader(io.StringIO(lines[0])))
    if len(header) < 2:
        return ["CSV header must list at least two comma-separated columns"]
    errors: List[str] = []
    for idx, row in enumerate(csv.reader(io.StringIO("\n".join(lines[1:]))), start=2):
        if row and len(row) != len(header):
            errors.append(f"Row {idx} has {len(row)} columns, expected {len(header)}")
    return errors


_BY_EXTENSION: Dict[str, Validator] = {
    ".py": validate_python,
    ".xml": validate_xml,
    ".csv": validate_csv,
}


def validate_file(path: str, content: str) -> List[str]:
    """Return a list of syntax problems for ``content``; empty means valid.

    Files with no registered validator are always valid.
    """
    fn = _BY_EXTENSION.get(posixpath.splitext(path)[1].lower())
    if fn is None:
        return []
    return fn(content)


__all__ = ["validate_file", "validate_python", "validate_xml", "validate_csv"]
