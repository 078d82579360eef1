"""Run manifest utilities for diagnostics and reproducibility."""

from __future__ import annotations

import json
import platform
import sys
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from tradescope.core.utils.errors import ArtifactError

MANIFEST_VERSION = 1


@dataclass
class RunManifestWriter:
    """Incrementally build and persist report run manifests."""

    output_dir: Path
    command: str
    run_id: str
    manifest_name: str = "run_manifest.json"
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    _payload: dict[str, Any] = field(init=False)

    def __post_init__(self) -> None:
        self._payload = {
            "manifest_version": MANIFEST_VERSION,
            "command": self.command,
            "run_id": self.run_id,
            "status": "running",
            "started_at": self.started_at.isoformat(),
            "finished_at": None,
            "duration_seconds": None,
            "environment": {
                "python_version": sys.version.split()[0],
                "platform": platform.platform(),
            },
            "inputs": {},
            "context": {},
            "result": {},
            "failure": {},
        }

    @property
    def manifest_path(self) -> Path:
        """Path the manifest is written to."""
        return self.output_dir / self.manifest_name

    def set_inputs(
        self,
        config_path: Path | None = None,
        bars_path: Path | None = None,
        positions_path: Path | None = None,
        benchmark_path: Path | None = None,
    ) -> None:
        """Record the input files of the run."""

        def _as_text(path: Path | None) -> str | None:
            return str(path.resolve()) if path is not None else None

        self._payload["inputs"] = {
            "config_path": _as_text(config_path),
            "bars_path": _as_text(bars_path),
            "positions_path": _as_text(positions_path),
            "benchmark_path": _as_text(benchmark_path),
        }

    def set_context(
        self,
        strategy_name: str,
        interval: str,
        first_bar: str | None = None,
        last_bar: str | None = None,
        bar_count: int = 0,
    ) -> None:
        """Record strategy and bar range metadata."""
        self._payload["context"] = {
            "strategy_name": strategy_name,
            "interval": interval,
            "bar_range": {"first": first_bar, "last": last_bar, "count": bar_count},
        }

    def mark_success(
        self,
        metrics: dict[str, float],
        artifact_paths: list[str],
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Mark manifest as successful."""
        self._payload["status"] = "success"
        self._payload["result"] = {
            "metrics": dict(metrics),
            "artifact_paths": sorted({str(path) for path in artifact_paths}),
            "extra": extra or {},
        }
        self._payload["failure"] = {}

    def mark_failure(self, exc: Exception) -> None:
        """Mark manifest as failed and capture exception diagnostics."""
        self._payload["status"] = "failed"
        self._payload["result"] = {}
        self._payload["failure"] = {
            "exception_type": exc.__class__.__name__,
            "error_code": getattr(exc, "error_code", None),
            "message": str(exc),
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }

    def write(self) -> Path:
        """Persist manifest and return written path."""
        finished_at = datetime.now(tz=UTC)
        self._payload["finished_at"] = finished_at.isoformat()
        self._payload["duration_seconds"] = float((finished_at - self.started_at).total_seconds())

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.manifest_path.write_text(
                json.dumps(self._payload, indent=2, sort_keys=True) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            raise ArtifactError(
                f"Failed to write run manifest {self.manifest_path}: {exc}"
            ) from exc
        return self.manifest_path
