from __future__ import annotations

"""
Canonical layout rules for generated Odoo module files.

``normalize_module_path`` maps whatever path an LLM proposes onto the module
layout or rejects it by returning None. ``is_canonical_path`` is the strict
check applied to the final result set.
"""

import logging
import posixpath
import re
from typing import Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "__manifest__.py"
INIT_FILENAME = "__init__.py"
ROOT_FILENAMES: FrozenSet[str] = frozenset({MANIFEST_FILENAME, INIT_FILENAME})

ALLOWED_TOP_DIRS: FrozenSet[str] = frozenset(
    {"models", "views", "security", "data", "report", "wizards", "static"}
)

# Extensions a top-level directory may hold; None means anything goes.
_DIR_EXTENSIONS: Dict[str, Optional[FrozenSet[str]]] = {
    "models": frozenset({".py"}),
    "views": frozenset({".xml"}),
    "security": frozenset({".csv", ".xml"}),
    "data": frozenset({".xml", ".csv"}),
    "report": frozenset({".xml", ".py"}),
    "wizards": frozenset({".py", ".xml"}),
    "static": None,
}

# Where a misplaced file of a given extension is moved to.
_DEFAULT_DIR_FOR_EXT: Dict[str, str] = {
    ".py": "models",
    ".xml": "views",
    ".csv": "security",
}

_DIR_ALIASES: Dict[str, str] = {
    "model": "models",
    "view": "views",
    "wizard": "wizards",
    "reports": "report",
}

VIEWS_SUFFIX = "_views.xml"
_MENU_FILE_RE = re.compile(r"menus?\.xml$", re.IGNORECASE)
_XML_EXT_RE = re.compile(r"\.xml$", re.IGNORECASE)
_MULTI_SLASH_RE = re.compile(r"/{2,}")


def _ext(name: str) -> str:
    return posixpath.splitext(name)[1].lower()


def _views_name(filename: str) -> str:
    """Enforce the ``*_views.xml`` convention; menu files are exempt."""
    lower = filename.lower()
    if lower.endswith(VIEWS_SUFFIX) or _MENU_FILE_RE.search(filename):
        return filename
    return _XML_EXT_RE.sub(VIEWS_SUFFIX, filename)


def _clean_segment(seg: str) -> str:
    return re.sub(r"\s+", "_", seg.strip())


def _split(raw_path: str) -> Optional[list[str]]:
    path = raw_path.strip().strip("`'\"").replace("\\", "/")
    path = _MULTI_SLASH_RE.sub("/", path)
    while path.startswith("./"):
        path = path[2:]
    path = path.lstrip("/")
    segments = [_clean_segment(s) for s in path.split("/") if s.strip() and s.strip() != "."]
    if not segments or any(s == ".." for s in segments):
        return None
    return segments


def normalize_module_path(raw_path: str, module_name: str) -> Optional[str]:
    """Map ``raw_path`` to ``<module_name>/<allowed layout>`` or return None.

    Rules, in order:
      1. normalize separators and strip a leading ``./``
      2. prepend the module name when absent
      3. a manifest anywhere below the root is rewritten to the root manifest
      4. a root-level file other than the package init is relocated by extension
      5. files under ``views/`` get the ``_views.xml`` suffix (menu files exempt)
      6. files in a directory that does not hold their extension are moved
      7. anything outside the allowed top-level directories is rejected
    """
    if not isinstance(raw_path, str) or not module_name:
        return None
    segments = _split(raw_path)
    if segments is None:
        return None

    while segments and segments[0] == module_name:
        segments = segments[1:]
    if not segments:
        return None

    filename = segments[-1]
    # Nested manifests are self-healed to the root rather than rejected.
    if filename == MANIFEST_FILENAME:
        return f"{module_name}/{MANIFEST_FILENAME}"

    ext = _ext(filename)
    if len(segments) == 1:
        if filename == INIT_FILENAME:
            return f"{module_name}/{INIT_FILENAME}"
        target = _DEFAULT_DIR_FOR_EXT.get(ext)
        if target is None:
            return None
        if target == "views":
            filename = _views_name(filename)
        return f"{module_name}/{target}/{filename}"

    top = _DIR_ALIASES.get(segments[0].lower(), segments[0])
    segments = [top] + segments[1:]
    if top not in ALLOWED_TOP_DIRS:
        # A spurious wrapper directory such as ``addons/models/x.py``.
        for idx in range(1, len(segments) - 1):
            cand = _DIR_ALIASES.get(segments[idx].lower(), segments[idx])
            if cand in ALLOWED_TOP_DIRS:
                segments = [cand] + segments[idx + 1 :]
                break

    top = segments[0]
    allowed_exts = _DIR_EXTENSIONS.get(top, frozenset())
    if top not in ALLOWED_TOP_DIRS or (allowed_exts is not None and ext not in allowed_exts):
        target = _DEFAULT_DIR_FOR_EXT.get(ext)
        if target is None:
            logger.debug("Rejected path %r for module %s", raw_path, module_name)
            return None
        segments = [target, filename]
        top = target

    if top == "views":
        segments[-1] = _views_name(segments[-1])

    return "/".join([module_name] + segments)


def is_canonical_path(path: str, module_name: str) -> bool:
    """Strict layout check used by the final result filter."""
    if not isinstance(path, str) or not path.startswith(f"{module_name}/"):
        return False
    rest = path[len(module_name) + 1 :]
    segments = rest.split("/")
    if any(not s or s in (".", "..") for s in segments):
        return False
    if len(segments) == 1:
        return segments[0] in ROOT_FILENAMES
    filename = segments[-1]
    if filename == MANIFEST_FILENAME:
        return False
    top = segments[0]
    if top not in ALLOWED_TOP_DIRS:
        return False
    allowed_exts = _DIR_EXTENSIONS[top]
    if allowed_exts is None:
        return bool(_ext(filename))
    if _ext(filename) not in allowed_exts:
        return False
    if top == "views":
        return _views_name(filename) == filename
    return True


__all__ = [
    "MANIFEST_FILENAME",
    "INIT_FILENAME",
    "ROOT_FILENAMES",
    "ALLOWED_TOP_DIRS",
    "VIEWS_SUFFIX",
    "normalize_module_path",
    "is_canonical_path",
]
