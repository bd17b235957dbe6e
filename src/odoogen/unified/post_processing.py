from __future__ import annotations

"""
Scaffolding passes run after per-file generation.

The ``ensure_*`` passes are idempotent: each only adds a file when the
module lacks it, so running them twice on one session adds nothing new.
"""

import ast
import logging
import posixpath
import re
from typing import Dict, List, Optional

from ..resources.generation_config import GenerationConfig
from ..resources.llm_client import LLMClientProto
from ..utils.content_cleaner import PY_CODING_LINE, XML_DECLARATION, clean_file_content
from ..utils.errors import GenerationCancelled
from ..utils.path_policy import (
    INIT_FILENAME,
    MANIFEST_FILENAME,
    is_canonical_path,
    normalize_module_path,
)
from ..utils.validators import validate_python
from .session import FileArtifact, GenerationSession
from .stage_raw import call_stage

logger = logging.getLogger(__name__)

ACCESS_CSV_NAME = "ir.model.access.csv"
ACCESS_CSV_HEADER = "id,name,model_id:id,group_id:id,perm_read,perm_write,perm_create,perm_unlink\n"


def _model_files(paths: List[str], module_name: str) -> List[str]:
    prefix = f"{module_name}/models/"
    return sorted(
        p for p in paths
        if p.startswith(prefix) and p.endswith(".py") and posixpath.basename(p) != INIT_FILENAME
    )


def _add(session: GenerationSession, raw_path: str, content: str, reason: str) -> Optional[str]:
    path = normalize_module_path(raw_path, session.module_name)
    if path is None or session.has(path):
        return None
    session.put(FileArtifact(path=path, content=content, origin_line=f"synthesized:{reason}"))
    session.stats.synthesized += 1
    session.emit("file.ready", path=path, content=content)
    session.emit("file.added", path=path, reason=reason)
    logger.info("Synthesized %s (%s)", path, reason)
    return path


def ensure_models_init(session: GenerationSession) -> List[str]:
    """Give every directory holding model files an ``__init__.py`` importing them."""
    by_dir: Dict[str, List[str]] = {}
    for p in _model_files(session.paths(), session.module_name):
        by_dir.setdefault(posixpath.dirname(p), []).append(posixpath.splitext(posixpath.basename(p))[0])

    added: List[str] = []
    for directory, modules in sorted(by_dir.items()):
        init_path = f"{directory}/{INIT_FILENAME}"
        if session.has(init_path):
            continue
        lines = [PY_CODING_LINE, ""] + [f"from . import {m}" for m in sorted(modules)]
        path = _add(session, init_path, "\n".join(lines) + "\n", "models_init")
        if path:
            added.append(path)
    return added


def ensure_default_view(session: GenerationSession) -> List[str]:
    module = session.module_name
    paths = session.paths()
    if not _model_files(paths, module):
        return []
    if any(p.startswith(f"{module}/views/") and p.endswith(".xml") for p in paths):
        return []
    content = (
        f"{XML_DECLARATION}\n"
        "<odoo>\n"
        f"    <!-- Placeholder views for {module}: add form, list and search views here. -->\n"
        "</odoo>\n"
    )
    path = _add(session, f"{module}/views/{module}_views.xml", content, "default_view")
    return [path] if path else []


def ensure_access_csv(session: GenerationSession) -> List[str]:
    module = session.module_name
    paths = session.paths()
    if not _model_files(paths, module):
        return []
    if any(p.startswith(f"{module}/security/") and p.endswith(".csv") for p in paths):
        return []
    path = _add(session, f"{module}/security/{ACCESS_CSV_NAME}", ACCESS_CSV_HEADER, "access_csv")
    return [path] if path else []


def run_ensure_passes(session: GenerationSession) -> List[str]:
    added: List[str] = []
    added += ensure_models_init(session)
    added += ensure_default_view(session)
    added += ensure_access_csv(session)
    return added


# ---- Essential root files ----

def _data_files(paths: List[str], module_name: str) -> List[str]:
    """Manifest ``data`` entries: security first, menus last."""

    def rank(rel: str) -> tuple:
        top = rel.split("/", 1)[0]
        order = {"security": 0, "data": 1, "wizards": 2, "report": 3, "views": 4}.get(top, 5)
        is_menu = bool(re.search(r"menus?\.xml$", rel))
        return (order, is_menu, rel)

    rels = [
        p[len(module_name) + 1 :]
        for p in paths
        if p.endswith((".xml", ".csv")) and not p.startswith(f"{module_name}/static/")
    ]
    return sorted(rels, key=rank)


def default_manifest(module_name: str, version: str, paths: List[str]) -> str:
    title = " ".join(w.capitalize() for w in module_name.split("_"))
    module_version = f"{version}.1.0.0" if re.fullmatch(r"\d+\.\d+", version or "") else "1.0.0"
    data_lines = "".join(f"        '{rel}',\n" for rel in _data_files(paths, module_name))
    return (
        f"{PY_CODING_LINE}\n"
        "{\n"
        f"    'name': '{title}',\n"
        f"    'version': '{module_version}',\n"
        f"    'summary': '{title}',\n"
        "    'depends': ['base'],\n"
        "    'data': [\n"
        f"{data_lines}"
        "    ],\n"
        "    'installable': True,\n"
        "    'application': True,\n"
        "    'license': 'LGPL-3',\n"
        "}\n"
    )


def default_root_init(module_name: str, paths: List[str]) -> str:
    packages = sorted(
        {
            p.split("/")[1]
            for p in paths
            if p.endswith(".py") and p.count("/") >= 2 and p.split("/")[1] in ("models", "wizards", "report")
        }
    )
    return "\n".join([PY_CODING_LINE, ""] + [f"from . import {pkg}" for pkg in packages]) + "\n"


def _has_code(content: str) -> bool:
    return any(ln.strip() and not ln.lstrip().startswith("#") for ln in content.splitlines())


def _manifest_is_valid(content: str) -> bool:
    if validate_python(content):
        return False
    try:
        return isinstance(ast.literal_eval(content.strip()), dict)
    except (ValueError, SyntaxError):
        return False


def ensure_essential_files(
    llm: LLMClientProto,
    session: GenerationSession,
    *,
    config: GenerationConfig,
) -> List[str]:
    """Make sure the root manifest and package init exist (full mode only).

    Each missing file is requested from the model once; an unusable answer
    falls back to a deterministic default.
    """
    module = session.module_name
    added: List[str] = []
    specifications = getattr(session.artifacts.get("specification"), "raw_text", "")
    for filename in (MANIFEST_FILENAME, INIT_FILENAME):
        path = f"{module}/{filename}"
        if session.has(path):
            continue
        session.check_cancelled(f"essential:{filename}")
        content: Optional[str] = None
        try:
            artifact = call_stage(
                llm,
                "essential",
                {
                    "file_path": path,
                    "module_name": module,
                    "version": session.request.version,
                    "specifications": specifications,
                    "files": sorted(session.paths()),
                },
                config=config,
            )
            candidate = clean_file_content(artifact.raw_text, path=path)
            if filename == MANIFEST_FILENAME:
                ok = _manifest_is_valid(candidate)
            else:
                ok = _has_code(candidate) and not validate_python(candidate)
            content = candidate if ok else None
        except GenerationCancelled:
            raise
        except Exception as exc:
            logger.warning("Essential file %s could not be generated: %s", path, exc)
        if content is None:
            paths = session.paths()
            content = (
                default_manifest(module, session.request.version, paths)
                if filename == MANIFEST_FILENAME
                else default_root_init(module, paths)
            )
        if _add(session, path, content, "essential"):
            added.append(path)
    return added


# ---- Final filter ----

def apply_final_filter(session: GenerationSession) -> List[str]:
    """Silently drop every path that breaks the canonical layout."""
    dropped: List[str] = []
    for path in session.paths():
        if not is_canonical_path(path, session.module_name):
            session.remove(path)
            dropped.append(path)
            logger.debug("Final filter dropped %s", path)
    return dropped


__all__ = [
    "ACCESS_CSV_HEADER",
    "ACCESS_CSV_NAME",
    "ensure_models_init",
    "ensure_default_view",
    "ensure_access_csv",
    "run_ensure_passes",
    "default_manifest",
    "default_root_init",
    "ensure_essential_files",
    "apply_final_filter",
]
