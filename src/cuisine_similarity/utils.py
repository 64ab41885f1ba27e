from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from cuisine_similarity.common.logging_setup import setup_logging
from .core import PipelineContext


def stage_logger(context: PipelineContext | logging.Logger, stage_name: str, *, force: bool = False) -> logging.Logger:
    """
    Configure logging for a stage and return a namespaced logger.
    """
    if isinstance(context, logging.Logger):
        return context

    setup_logging(context.logging(stage_name), base_dir=context.workdir, force=force)
    return logging.getLogger(f"cuisine_similarity.{stage_name}")


def reports_dir(context: PipelineContext, cfg: Mapping[str, Any], key: str = "reports_dir") -> Optional[Path]:
    """Return the stage's output directory (created), or None when not configured."""
    raw = (cfg.get("output") or {}).get(key)
    if not raw:
        return None
    out_dir = context.resolve(raw)
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir
