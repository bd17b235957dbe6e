from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..types import EventKind
from ..utils.errors import GenerationCancelled
from .envelopes import GenerationRequest, StageArtifact

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag polled by the orchestrator.

    Optionally wraps a zero-argument predicate (e.g. a UI "stop" button state)
    that is consulted on every check.
    """

    def __init__(self, predicate: Optional[Callable[[], bool]] = None):
        self._event = threading.Event()
        self._predicate = predicate

    @classmethod
    def coerce(cls, value: Union["CancellationToken", Callable[[], bool], None]) -> "CancellationToken":
        if isinstance(value, CancellationToken):
            return value
        if value is None:
            return cls()
        if callable(value):
            return cls(predicate=value)
        raise TypeError(f"Unsupported cancellation value: {value!r}")

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._predicate is not None and self._predicate():
            self._event.set()
            return True
        return False


@dataclass(frozen=True)
class ProgressEvent:
    kind: EventKind
    payload: Dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class FileArtifact:
    path: str
    content: str
    origin_line: Optional[str] = None


@dataclass
class GenerationStats:
    generated: int = 0
    failed: int = 0
    skipped: int = 0
    empty: int = 0
    fixed: int = 0
    synthesized: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class GenerationSession:
    """Mutable state for one pipeline run; never reused across requests."""

    def __init__(
        self,
        request: GenerationRequest,
        *,
        cancellation: Union[CancellationToken, Callable[[], bool], None] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.session_id = uuid.uuid4().hex[:12]
        self.request = request
        self.token = CancellationToken.coerce(cancellation)
        self._progress = progress
        self._files: Dict[str, FileArtifact] = {}
        self._lock = threading.Lock()
        self.files_processed = 0
        self.artifacts: Dict[str, StageArtifact] = {}
        self.updated_tasks: Optional[str] = None
        self.stats = GenerationStats()
        self.started_at = time.monotonic()

    @property
    def module_name(self) -> str:
        return self.request.module_name

    # ---- events ----

    def emit(self, kind: EventKind, **payload: Any) -> None:
        if self._progress is None:
            return
        try:
            self._progress(ProgressEvent(kind=kind, payload=payload))
        except Exception:
            # listener errors are logged, never propagated
            logger.exception("Progress callback failed for %s", kind)

    # ---- cancellation ----

    def check_cancelled(self, stage: str) -> None:
        if self.token.cancelled:
            logger.info("Cancellation observed before %s", stage)
            raise GenerationCancelled(stage=stage, files=self.snapshot())

    # ---- files ----

    def put(self, artifact: FileArtifact) -> None:
        """Store ``artifact``; an existing entry at the same path is replaced."""
        with self._lock:
            self._files[artifact.path] = artifact
            self.files_processed += 1

    def has(self, path: str) -> bool:
        with self._lock:
            return path in self._files

    def remove(self, path: str) -> None:
        with self._lock:
            self._files.pop(path, None)

    def paths(self) -> List[str]:
        with self._lock:
            return list(self._files)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return {p: a.content for p, a in self._files.items()}

    def elapsed_s(self) -> float:
        return time.monotonic() - self.started_at


__all__ = [
    "CancellationToken",
    "ProgressEvent",
    "ProgressCallback",
    "FileArtifact",
    "GenerationStats",
    "GenerationSession",
]
