"""Command-line entry point for generating an Odoo module."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from odoogen.data_layer.module_writer import ModuleWriter
from odoogen.resources.generation_config import GenerationConfig
from odoogen.resources.llm_client import LLMClientProto, OpenAICompatibleClient
from odoogen.unified.envelopes import GenerationRequest
from odoogen.unified.orchestrator import generate_module
from odoogen.unified.session import ProgressEvent
from odoogen.utils.errors import DomainRejectedError, OGError
from odoogen.utils.module_name import sanitize_module_name

logger = logging.getLogger("odoogen")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_REJECTED = 2
EXIT_CANCELLED = 130


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate an Odoo module from a natural-language request")
    parser.add_argument("prompt", help="What the module should do")
    parser.add_argument("--version", dest="odoo_version", default="17.0", help="Target Odoo version (default 17.0)")
    parser.add_argument("--module", help="Module technical name (derived from the prompt when omitted)")
    parser.add_argument("--out", default=".", help="Addons directory to write the module into")
    parser.add_argument(
        "--file",
        action="append",
        default=None,
        dest="files",
        help="Generate only this module-relative file (may be repeated)",
    )
    parser.add_argument("--skip-validation", action="store_true", help="Do not classify the request first")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--dry-run", action="store_true", help="Print paths instead of writing files")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    return parser


def _log_event(event: ProgressEvent) -> None:
    payload = event.payload
    if event.kind in ("file.ready", "file.added"):
        logger.info("%s %s", event.kind, payload.get("path"))
    elif event.kind in ("file.error", "file.skipped", "file.empty"):
        logger.warning("%s %s %s", event.kind, payload.get("path"), payload.get("error") or payload.get("reason") or "")
    elif event.kind == "files.count":
        logger.info("%d file(s) planned", payload.get("count", 0))
    else:
        logger.debug("%s", event.kind)


def main(argv: Iterable[str] | None = None, *, llm: Optional[LLMClientProto] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = GenerationConfig.from_yaml(args.config) if args.config else GenerationConfig().with_env_overrides()
        module_name = args.module or sanitize_module_name(args.prompt)
        request = GenerationRequest(
            prompt=args.prompt,
            version=args.odoo_version,
            module_name=module_name,
            target_files=tuple(args.files or ()),
            skip_validation=args.skip_validation,
        )
        client = llm or OpenAICompatibleClient(config.provider)
        result = generate_module(request, client, progress=_log_event, config=config)
    except DomainRejectedError as exc:
        logger.error("Request rejected: %s", exc.reason)
        return EXIT_REJECTED
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_CANCELLED
    except OGError as exc:
        logger.error("Generation failed: %s", exc)
        return EXIT_FAILURE

    if args.dry_run:
        for path in sorted(result.files):
            print(path)
    else:
        try:
            ModuleWriter(Path(args.out)).write_files(result.files)
        except OGError as exc:
            logger.error("Writing files failed: %s", exc)
            return EXIT_FAILURE
    print(result.summary)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
