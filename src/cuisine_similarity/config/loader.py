"""
Consolidated pipeline YAML: one ``pipeline.<stage>`` section per stage with
``data``/``params``/``output`` subsections, plus per-stage ``logging``.
"""
from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).with_name("pipeline.yaml")

# Stages that read settings with no usable default (the recipe file location).
REQUIRED_STAGES = ("load_corpus",)
STAGE_SUBSECTIONS = ("data", "params", "output")


class PipelineConfig:
    """Read-only view of the pipeline YAML; ``with_overrides`` returns a modified copy."""

    def __init__(self, data: Mapping[str, Any], path: Path | None = None) -> None:
        self._data = dict(data)
        self.path = path

    @classmethod
    def load(cls, path: str | Path | None = None) -> "PipelineConfig":
        resolved = Path(path or DEFAULT_CONFIG_PATH)
        if not resolved.exists():
            raise FileNotFoundError(f"Pipeline config not found at {resolved}")
        with resolved.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, MutableMapping):
            raise ValueError(f"Pipeline config at {resolved} must be a mapping.")
        config = cls(raw, resolved)
        config.validate()
        return config

    def validate(self, required: Iterable[str] = REQUIRED_STAGES) -> None:
        """Raise ValueError listing every structural problem in the config."""
        problems: List[str] = []
        pipeline_cfg = self._data.get("pipeline")
        if not isinstance(pipeline_cfg, Mapping):
            problems.append("'pipeline' must be a mapping of stage sections")
            pipeline_cfg = {}

        for name in required:
            if name not in pipeline_cfg:
                problems.append(f"missing stage section 'pipeline.{name}'")

        for name, stage_cfg in pipeline_cfg.items():
            if stage_cfg is None:
                continue
            if not isinstance(stage_cfg, Mapping):
                problems.append(f"'pipeline.{name}' must be a mapping")
                continue
            for key in STAGE_SUBSECTIONS:
                if key in stage_cfg and not isinstance(stage_cfg[key], Mapping):
                    problems.append(f"'pipeline.{name}.{key}' must be a mapping")

        for key in ("logging", "logging_defaults"):
            if key in self._data and not isinstance(self._data[key], Mapping):
                problems.append(f"'{key}' must be a mapping")

        if problems:
            where = self.path or "<in-memory config>"
            raise ValueError(f"Invalid pipeline config {where}: " + "; ".join(problems))

    @property
    def raw(self) -> Dict[str, Any]:
        return deepcopy(self._data)

    def stage(self, name: str, *, required: bool = True) -> Dict[str, Any]:
        stage_cfg = (self._data.get("pipeline") or {}).get(name)
        if stage_cfg is None:
            if required:
                raise KeyError(f"Stage '{name}' not found in pipeline config {self.path}")
            return {}
        return deepcopy(stage_cfg)

    def with_overrides(self, stage: str, section: str, values: Mapping[str, Any]) -> "PipelineConfig":
        """Return a copy with ``pipeline.<stage>.<section>`` updated from ``values``."""
        data = self.raw
        stage_cfg = data.setdefault("pipeline", {}).get(stage) or {}
        data["pipeline"][stage] = stage_cfg
        stage_cfg.setdefault(section, {}).update(values)
        return PipelineConfig(data, self.path)

    def logging(self, name: str, *, fallback: str | None = "pipeline") -> Dict[str, Any]:
        """Logging section for ``name``, else the ``fallback`` section, else ``logging_defaults``."""
        logging_cfg = self._data.get("logging") or {}
        target = logging_cfg.get(name) or (logging_cfg.get(fallback) if fallback else None)
        if not target:
            target = self._data.get("logging_defaults")
        return {"logging": deepcopy(target)} if target else {}


def load_config(path: str | Path | None = None) -> PipelineConfig:
    return PipelineConfig.load(path)


__all__ = ["PipelineConfig", "load_config", "DEFAULT_CONFIG_PATH", "REQUIRED_STAGES"]
