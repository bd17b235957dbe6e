from typing import Literal, Tuple, get_args, cast

# Shared stage literal across the codebase
Stage = Literal[
    "validation",
    "specification",
    "tasks",
    "menu",
    "file",
    "fix",
    "essential",
    "summary",
]

# Derived from the Literal at import time to avoid drift.
STAGES: Tuple[Stage, ...] = cast(Tuple[Stage, ...], get_args(Stage))

# Progress event names emitted by the orchestrator
EventKind = Literal[
    "validation.start",
    "validation.success",
    "validation.passed",
    "validation.failed",
    "specs.ready",
    "tasks.ready",
    "menu.ready",
    "files.count",
    "file.started",
    "file.ready",
    "file.cleaned",
    "file.done",
    "file.error",
    "file.skipped",
    "file.empty",
    "file.added",
    "generation.complete",
]

__all__ = ["Stage", "STAGES", "EventKind"]
