"""
Root logging for pipeline runs.

Settings come from a ``logging`` section of the pipeline YAML (level, console,
file, rotate, fmt, datefmt). The command line can override the level and the
log file; relative log files are placed under the run's working directory.
"""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, List, Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# matplotlib font discovery and PIL plugin loading are chatty at DEBUG
NOISY_LOGGERS = ("matplotlib", "PIL", "fontTools")


def resolve_level(name: Any) -> int:
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{name}'; choose from {', '.join(LOG_LEVELS)}")
    return level


def _file_handler(path: Path, rotate: Dict[str, Any]) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=str(path),
        maxBytes=int(rotate.get("max_bytes", 1_048_576)),
        backupCount=int(rotate.get("backup_count", 3)),
        encoding="utf-8",
    )


def setup_logging(
    cfg: Optional[Dict[str, Any]] = None,
    *,
    level: Optional[str] = None,
    log_file: Optional[str | Path] = None,
    base_dir: Optional[Path] = None,
    force: bool = False,
) -> None:
    """
    Configure the root logger. Once handlers exist this is a no-op unless
    ``force`` is set, so the first caller (usually the CLI) decides.
    """
    if logging.getLogger().handlers and not force:
        return

    log_cfg = dict((cfg or {}).get("logging") or {})
    if level is not None:
        log_cfg["level"] = level
    if log_file is not None:
        log_cfg["file"] = str(log_file)

    formatter = logging.Formatter(fmt=log_cfg.get("fmt", LOG_FORMAT), datefmt=log_cfg.get("datefmt", DATE_FORMAT))
    handlers: List[logging.Handler] = []
    if log_cfg.get("console", True):
        handlers.append(logging.StreamHandler())

    if log_cfg.get("file"):
        path = Path(log_cfg["file"])
        if base_dir is not None and not path.is_absolute():
            path = Path(base_dir) / path
        handlers.append(_file_handler(path, log_cfg.get("rotate") or {}))

    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=resolve_level(log_cfg.get("level", "INFO")), handlers=handlers, force=force)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
