from __future__ import annotations

from dataclasses import asdict, dataclass, field
import json
import logging
from pathlib import Path
import threading
import time
from typing import Any, Callable


DiagnosticLogger = Callable[[dict[str, Any]], None]

ACTION_SKIPPED_SIDE = "skipped_unsupported_side"
ACTION_SKIPPED_GLYPH = "skipped_glyph_kind"
ACTION_SKIPPED_DATA = "skipped_bad_data"
ACTION_EMPTY_GEOMETRY = "empty_geometry"
ACTION_MISSING_TARGET = "missing_target"


@dataclass(frozen=True)
class Diagnostic:
    action: str
    component: str
    binding: str | None = None
    element_id: str | None = None
    side: str | None = None
    detail: str = ""
    ts_ns: int = field(default_factory=time.time_ns)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def emit(diagnostics: DiagnosticLogger | None, record: Diagnostic) -> None:
    if diagnostics is not None:
        diagnostics(record.as_dict())


def skip_binding(
    logger: logging.Logger,
    diagnostics: DiagnosticLogger | None,
    binding: Any,
    component: str,
    exc: Exception,
    *,
    action: str,
) -> None:
    """Warn about a binding a pass could not use and forward it to `diagnostics`."""

    side = binding.side.value if binding.side is not None else None
    logger.warning("%s: skipping binding %s: %s", component, binding.binding_id, exc)
    emit(
        diagnostics,
        Diagnostic(action=action, component=component, binding=binding.binding_id, side=side, detail=str(exc)),
    )


class JsonlDiagnosticSink:
    """Append-only JSON-lines file of diagnostic records; usable as a `DiagnosticLogger`."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def __call__(self, entry: dict[str, Any]) -> None:
        self.log(entry)

    def log(self, entry: dict[str, Any]) -> None:
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry, separators=(",", ":"), sort_keys=True))
                f.write("\n")

    def rows(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        if not self.path.exists():
            return out
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    row = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(row, dict):
                    out.append(row)
        return out

    def summarize(self) -> dict[str, Any]:
        by_action: dict[str, int] = {}
        by_component: dict[str, int] = {}
        rows = self.rows()
        for row in rows:
            action = str(row.get("action", ""))
            component = str(row.get("component", ""))
            by_action[action] = by_action.get(action, 0) + 1
            by_component[component] = by_component.get(component, 0) + 1
        return {"total": len(rows), "by_action": by_action, "by_component": by_component}

    def prune(self, *, max_rows: int | None = None) -> int:
        if max_rows is None or max_rows <= 0 or not self.path.exists():
            return 0
        with self._lock:
            rows = [line for line in self.path.read_text(encoding="utf-8").splitlines() if line.strip()]
            if len(rows) <= max_rows:
                return 0
            kept = rows[-max_rows:]
            with self.path.open("w", encoding="utf-8") as f:
                for row in kept:
                    f.write(row)
                    f.write("\n")
        return len(rows) - len(kept)
