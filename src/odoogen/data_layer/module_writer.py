from __future__ import annotations

"""Filesystem collaborator: writes a generated path -> content map under an addons root."""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from ..utils.errors import Err, OGError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleWriter:
    """Writes module files relative to ``root``. Atomic per file, not across files."""

    root: Path

    def __post_init__(self):
        if self.root is None or str(self.root).strip() == "":
            raise OGError(Err.INVALID_CONFIG, ctx={"reason": "writer_missing_root"})
        object.__setattr__(self, "root", Path(self.root))

    def resolve(self, rel_path: str) -> Path:
        root = self.root.resolve()
        target = (root / rel_path).resolve()
        if target != root and root not in target.parents:
            raise OGError(Err.IO_ERROR, ctx={"reason": "path_escapes_root", "path": rel_path})
        return target

    def ensure_directory(self, rel_path: str) -> Path:
        target = self.resolve(rel_path)
        target.mkdir(parents=True, exist_ok=True)
        return target

    def write_file(self, rel_path: str, content: str) -> Path:
        target = self.resolve(rel_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
                fh.write(content)
            os.replace(tmp_name, target)
        except OSError as exc:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise OGError(Err.IO_ERROR, ctx={"reason": "write_failed", "path": rel_path}, cause=exc)
        return target

    def write_files(self, files: Dict[str, str]) -> List[Path]:
        written = [self.write_file(rel, content) for rel, content in sorted(files.items())]
        logger.info("Wrote %d file(s) under %s", len(written), self.root)
        return written


__all__ = ["ModuleWriter"]
