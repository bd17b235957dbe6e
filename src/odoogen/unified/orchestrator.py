from __future__ import annotations

"""
Pipeline orchestrator: one request in, a canonical path -> content map out.

Full mode:
    validation -> specification -> tasks -> menu -> files -> post-processing
Targeted mode (explicit file subset):
    validation (optional) -> specification -> files -> post-processing

Every stage is preceded by a cancellation check. Per-file failures are
reported as events and never abort the run.
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..resources.generation_config import GenerationConfig
from ..resources.llm_client import LLMClientProto
from ..utils.content_cleaner import clean_file_content
from ..utils.errors import DomainRejectedError, GenerationCancelled
from ..utils.json_repair import parse_json_lenient, strip_wrappers
from ..utils.path_policy import normalize_module_path
from ..utils.summarize import summarize
from ..utils.validators import validate_file
from .envelopes import GenerationRequest, GenerationResult, StageArtifact
from .file_tasks import FileTask, mark_task_complete, parse_file_tasks
from .post_processing import apply_final_filter, ensure_essential_files, run_ensure_passes
from .request_validator import validate_request
from .session import CancellationToken, FileArtifact, GenerationSession, ProgressCallback
from .spec_cache import SpecCache, cache_key
from .stage_core import preview
from .stage_raw import call_stage, summarize_artifact

logger = logging.getLogger(__name__)

_PATH_KEY_RE = re.compile(r"^[\w./\\-]+/[\w.-]+\.[A-Za-z0-9]+$")


@dataclass(frozen=True)
class FileContext:
    specifications: str
    tasks: str
    menu: str


def generate_module(
    request: GenerationRequest,
    llm: LLMClientProto,
    *,
    progress: Optional[ProgressCallback] = None,
    cancellation: Union[CancellationToken, Callable[[], bool], None] = None,
    config: Optional[GenerationConfig] = None,
    spec_cache: Optional[SpecCache] = None,
) -> GenerationResult:
    """Run the whole pipeline for ``request``.

    Raises:
        DomainRejectedError: validation decided the request is not about Odoo.
        GenerationCancelled: the token was observed; ``exc.files`` holds the
            files completed so far.
        ProviderError: a stage call failed after exhausting retries (per-file
            failures are reported as ``file.error`` events instead).
    """
    config = config or GenerationConfig()
    request.validate()
    session = GenerationSession(request, cancellation=cancellation, progress=progress)
    logger.info(
        "Generating %s for Odoo %s (%s mode, session %s)",
        request.module_name,
        request.version,
        "targeted" if request.targeted else "full",
        session.session_id,
    )

    session.check_cancelled("validation")
    reason = _run_validation(llm, session, config)

    session.check_cancelled("specification")
    specs = _run_specification(llm, session, config, spec_cache, validation_reason=reason)

    if request.targeted:
        tasks_text, file_tasks = _targeted_tasks(request.target_files)
        menu_text = ""
    else:
        session.check_cancelled("tasks")
        tasks = call_stage(
            llm,
            "tasks",
            {"specifications": specs.raw_text, "version": request.version, "module_name": request.module_name},
            config=config,
        )
        session.artifacts["tasks"] = tasks
        session.emit("tasks.ready", preview=tasks.truncated_preview, length=len(tasks.raw_text))

        session.check_cancelled("menu")
        menu = call_stage(
            llm,
            "menu",
            {
                "specifications": specs.raw_text,
                "tasks": tasks.raw_text,
                "version": request.version,
                "module_name": request.module_name,
            },
            config=config,
        )
        session.artifacts["menu"] = menu
        session.emit("menu.ready", preview=menu.truncated_preview, length=len(menu.raw_text))
        tasks_text, menu_text = tasks.raw_text, menu.raw_text
        file_tasks = parse_file_tasks(tasks_text)

    session.updated_tasks = tasks_text
    context = _file_context(llm, specs.raw_text, tasks_text, menu_text, config)
    _generate_files(llm, session, file_tasks, context, config)

    session.check_cancelled("post_processing")
    run_ensure_passes(session)
    if not request.targeted and config.essential_files:
        ensure_essential_files(llm, session, config=config)
    apply_final_filter(session)

    stats = session.stats.to_dict()
    stats["files_processed"] = session.files_processed
    stats["duration_s"] = round(session.elapsed_s(), 2)
    files = session.snapshot()
    summary = _summary_line(request.module_name, len(files), stats)
    session.emit("generation.complete", stats=stats, summary=summary, files=sorted(files))
    logger.info(summary)
    return GenerationResult(
        files=files,
        summary=summary,
        stats=stats,
        specifications=specs.raw_text,
        tasks=session.updated_tasks,
        menu=menu_text or None,
    )


def _run_validation(llm: LLMClientProto, session: GenerationSession, config: GenerationConfig) -> str:
    request = session.request
    if request.skip_validation:
        session.emit("validation.passed", is_odoo_request=True, reason="Validation skipped", source="skipped")
        return ""
    result = validate_request(llm, session, config=config)
    if not result.is_odoo_request:
        raise DomainRejectedError(reason=result.reason, ctx={"module_name": request.module_name})
    return result.reason


def _run_specification(
    llm: LLMClientProto,
    session: GenerationSession,
    config: GenerationConfig,
    spec_cache: Optional[SpecCache],
    *,
    validation_reason: str = "",
) -> StageArtifact:
    request = session.request
    key = cache_key(request.module_name, request.version, request.prompt)
    cached = spec_cache.get(key) if spec_cache is not None else None
    if cached is not None:
        logger.info("Specification cache hit for %s", key)
        specs = StageArtifact(
            stage="specification",
            raw_text=cached,
            truncated_preview=preview(cached, config.preview_chars),
        )
    else:
        specs = call_stage(
            llm,
            "specification",
            {
                "prompt": request.prompt,
                "version": request.version,
                "module_name": request.module_name,
                "validation_reason": validation_reason,
            },
            config=config,
        )
        if spec_cache is not None:
            spec_cache.put(key, specs.raw_text)
    session.artifacts["specification"] = specs
    session.emit(
        "specs.ready",
        preview=specs.truncated_preview,
        length=len(specs.raw_text),
        cached=cached is not None,
    )
    return specs


def _targeted_tasks(target_files: Tuple[str, ...]) -> Tuple[str, List[FileTask]]:
    lines = [f"- [ ] Generate `{p}`" for p in target_files]
    tasks = [FileTask(line_index=i, line=line, raw_path=p) for i, (line, p) in enumerate(zip(lines, target_files))]
    return "\n".join(lines), tasks


def _file_context(
    llm: LLMClientProto, specs: str, tasks: str, menu: str, config: GenerationConfig
) -> FileContext:
    if config.summarize_context:
        return FileContext(
            specifications=summarize_artifact(llm, "specifications", specs, config=config),
            tasks=summarize_artifact(llm, "tasks", tasks, config=config),
            menu=summarize_artifact(llm, "menu structure", menu, config=config),
        )
    limit = config.file_context_chars
    return FileContext(
        specifications=summarize(specs, limit),
        tasks=summarize(tasks, limit),
        menu=summarize(menu, limit),
    )


def _plan_files(session: GenerationSession, file_tasks: List[FileTask]) -> List[Tuple[FileTask, str]]:
    planned: List[Tuple[FileTask, str]] = []
    seen = set()
    for task in file_tasks:
        path = normalize_module_path(task.raw_path, session.module_name)
        if path is None:
            session.stats.skipped += 1
            session.emit("file.skipped", path=task.raw_path, reason="invalid_path")
            continue
        if path in seen:
            session.stats.skipped += 1
            session.emit("file.skipped", path=path, reason="duplicate")
            continue
        seen.add(path)
        planned.append((task, path))
    return planned


def _generate_files(
    llm: LLMClientProto,
    session: GenerationSession,
    file_tasks: List[FileTask],
    context: FileContext,
    config: GenerationConfig,
) -> None:
    planned = _plan_files(session, file_tasks)
    session.emit("files.count", count=len(planned))
    total = len(planned)
    for index, (task, path) in enumerate(planned, start=1):
        session.check_cancelled(f"file:{path}")
        session.emit("file.started", path=path, index=index, total=total)
        try:
            _generate_one(llm, session, task, path, context, config, index=index, total=total)
        except GenerationCancelled:
            raise
        except Exception as exc:
            session.stats.failed += 1
            logger.warning("Generation of %s failed: %s", path, exc)
            session.emit("file.error", path=path, error=str(exc))


def unwrap_file_response(raw: str, path: str) -> Tuple[str, Optional[str]]:
    """Return (body, implied_path) for a per-file response.

    A response that is a JSON object mapping file paths to contents is
    unwrapped; any other response is the file body itself.
    """
    stripped = strip_wrappers(raw)
    if not stripped.startswith("{"):
        return raw, None
    payload = parse_json_lenient(stripped, default=None)
    if not isinstance(payload, dict):
        return raw, None
    if isinstance(payload.get(path), str):
        return payload[path], path
    for key, value in payload.items():
        if isinstance(key, str) and isinstance(value, str) and _PATH_KEY_RE.match(key.strip()):
            return value, key.strip()
    content = payload.get("content")
    if isinstance(content, str) and set(payload) <= {"content", "path", "file_path"}:
        implied = payload.get("path") or payload.get("file_path")
        return content, implied if isinstance(implied, str) else None
    return raw, None


def _generate_one(
    llm: LLMClientProto,
    session: GenerationSession,
    task: FileTask,
    path: str,
    context: FileContext,
    config: GenerationConfig,
    *,
    index: int,
    total: int,
) -> None:
    request = session.request
    artifact = call_stage(
        llm,
        "file",
        {
            "specifications": context.specifications,
            "tasks": context.tasks,
            "menu": context.menu,
            "version": request.version,
            "module_name": request.module_name,
            "file_path": path,
            "task_line": task.line,
        },
        config=config,
    )
    # Observed mid-file: this file is discarded, completed ones are kept.
    session.check_cancelled(f"file:{path}")

    body, implied = unwrap_file_response(artifact.raw_text, path)
    if not body.strip():
        session.stats.empty += 1
        session.emit("file.empty", path=path)
        return

    final_path = normalize_module_path(implied or path, session.module_name)
    if final_path is None:
        session.stats.skipped += 1
        session.emit("file.skipped", path=implied or path, reason="invalid_generated_path")
        return

    cleaned = clean_file_content(body, path=final_path)
    cleaned = _validate_and_fix(llm, session, final_path, cleaned, config)

    session.put(FileArtifact(path=final_path, content=cleaned, origin_line=task.line))
    session.updated_tasks = mark_task_complete(session.updated_tasks or "", task.line_index)
    session.stats.generated += 1
    session.emit("file.ready", path=final_path, content=cleaned)
    session.emit(
        "file.cleaned",
        path=final_path,
        before=len(body),
        after=len(cleaned),
        ext=posixpath.splitext(final_path)[1],
    )
    session.emit("file.done", path=final_path, size=len(cleaned), index=index, total=total)


def _validate_and_fix(
    llm: LLMClientProto,
    session: GenerationSession,
    path: str,
    content: str,
    config: GenerationConfig,
) -> str:
    errors = validate_file(path, content)
    if not errors:
        return content
    if not config.auto_fix:
        logger.warning("%s has syntax problems: %s", path, "; ".join(errors))
        return content

    session.check_cancelled(f"fix:{path}")
    try:
        artifact = call_stage(
            llm,
            "fix",
            {"file_path": path, "content": content, "errors": errors, "version": session.request.version},
            config=config,
        )
    except Exception as exc:
        logger.warning("Auto-fix of %s failed: %s", path, exc)
        return content
    fixed = clean_file_content(artifact.raw_text, path=path)
    remaining = validate_file(path, fixed)
    if remaining:
        logger.warning("Auto-fix of %s left problems: %s", path, "; ".join(remaining))
        return content
    session.stats.fixed += 1
    return fixed


def _summary_line(module_name: str, file_count: int, stats: Dict[str, object]) -> str:
    parts = [f"{file_count} file(s) ready for {module_name}"]
    if stats.get("failed"):
        parts.append(f"{stats['failed']} failed")
    if stats.get("skipped"):
        parts.append(f"{stats['skipped']} skipped")
    if stats.get("synthesized"):
        parts.append(f"{stats['synthesized']} synthesized")
    return ", ".join(parts) + f" in {stats.get('duration_s', 0)}s."


__all__ = ["generate_module", "unwrap_file_response", "FileContext"]
