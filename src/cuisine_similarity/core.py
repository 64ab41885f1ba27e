from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from cuisine_similarity.config import PipelineConfig


@dataclass
class StageResult:
    name: str = ""
    status: str = "success"
    outputs: Dict[str, Any] = field(default_factory=dict)
    details: Optional[str] = None
    artifacts: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineContext:
    """Per-run state. ``artifacts`` holds in-memory stage outputs keyed by name."""

    config: PipelineConfig
    workdir: Path = field(default_factory=Path.cwd)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("cuisine_similarity"))
    artifacts: Dict[str, Any] = field(default_factory=dict)

    def stage(self, name: str, *, required: bool = True) -> Dict[str, Any]:
        return self.config.stage(name, required=required)

    def logging(self, name: str) -> Dict[str, Any]:
        return self.config.logging(name)

    def resolve(self, path: str | Path) -> Path:
        """Resolve a config path against the working directory."""
        p = Path(path)
        return p if p.is_absolute() else self.workdir / p

    def require(self, key: str, stage: str) -> Any:
        if key not in self.artifacts:
            raise KeyError(f"Stage '{stage}' needs '{key}'; run the stage that produces it first.")
        return self.artifacts[key]
