from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from fluxmap_core import (
    AestheticBinding,
    GeomKind,
    GeometryTarget,
    HoverTarget,
    JsonlDiagnosticSink,
    MapGeometry,
    distribution_binding,
    load_settings,
    point_binding,
)
from fluxmap_core.model import Side
from fluxmap_core.pipeline import EncodingPipeline
from fluxmap_core.settings import DEFAULT_SETTINGS

DEMO_REACTIONS = ("PGI", "PFK", "FBA")
DEMO_METABOLITES = ("g6p_c", "f6p_c", "fdp_c")
DEMO_CONDITIONS = ("glucose", "acetate")


def main() -> None:
    parser = argparse.ArgumentParser(prog="fluxmap")
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="Encode a synthetic three-reaction map and print a JSON summary.")
    demo.add_argument("--settings", type=Path, default=None, help="TOML settings file.")
    demo.add_argument("--condition", type=str, default=None, help="Condition to select before the last tick.")
    demo.add_argument("--ticks", type=int, default=2)
    demo.add_argument("--seed", type=int, default=0)
    demo.add_argument("--diagnostics-jsonl", type=Path, default=None)
    demo.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    report = sub.add_parser("diagnostics-report", help="Print diagnostics summary from a JSONL sink.")
    report.add_argument("--diagnostics-jsonl", type=Path, required=True)

    prune = sub.add_parser("diagnostics-prune", help="Prune old diagnostics rows to max row count.")
    prune.add_argument("--diagnostics-jsonl", type=Path, required=True)
    prune.add_argument("--max-rows", type=int, required=True)

    args = parser.parse_args()

    if args.command == "demo":
        logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
        if args.ticks <= 0:
            parser.error("--ticks must be > 0")
        settings = load_settings(args.settings) if args.settings is not None else DEFAULT_SETTINGS
        sink = JsonlDiagnosticSink(args.diagnostics_jsonl) if args.diagnostics_jsonl is not None else None
        geometry, hovers = demo_geometry()
        pipeline = EncodingPipeline(geometry, settings, hovers=hovers, diagnostics=sink)
        pipeline.load(demo_bindings(args.seed))
        if args.condition is not None:
            try:
                pipeline.set_condition(args.condition)
            except ValueError as exc:
                parser.error(str(exc))
        reports = []
        for i in range(args.ticks):
            hovered = [hovers[0].node_id] if i == args.ticks - 1 else []
            reports.append(asdict(pipeline.tick(hovered=hovered)))
        print(json.dumps(summarize(pipeline, reports), indent=2, sort_keys=True))
        return

    if args.command == "diagnostics-report":
        sink = JsonlDiagnosticSink(args.diagnostics_jsonl)
        print(json.dumps(sink.summarize(), indent=2, sort_keys=True))
        return

    if args.command == "diagnostics-prune":
        sink = JsonlDiagnosticSink(args.diagnostics_jsonl)
        deleted = sink.prune(max_rows=args.max_rows)
        print(f"pruned rows={deleted}")
        return

    raise RuntimeError(f"unsupported command: {args.command}")


def demo_geometry() -> tuple[MapGeometry, list[HoverTarget]]:
    targets = [
        GeometryTarget("PGI", "n1", GeomKind.ARROW, (0.0, 0.0), direction=(1.0, 0.0), length=120.0),
        GeometryTarget("PFK", "n2", GeomKind.ARROW, (200.0, 0.0), direction=(0.0, 1.0), length=90.0),
        GeometryTarget("FBA", "n3", GeomKind.ARROW, (200.0, 160.0), direction=(1.0, 1.0), length=150.0),
        GeometryTarget("g6p_c", "n4", GeomKind.METABOLITE, (-100.0, 0.0)),
        GeometryTarget("f6p_c", "n5", GeomKind.METABOLITE, (100.0, 0.0)),
        GeometryTarget("fdp_c", "n6", GeomKind.METABOLITE, (200.0, 80.0)),
    ]
    hovers = [HoverTarget(t.element_id, t.node_id, t.position) for t in targets if t.kind is GeomKind.ARROW]
    return MapGeometry(targets), hovers


def demo_bindings(seed: int) -> list[AestheticBinding]:
    rng = np.random.default_rng(seed)
    ids = list(DEMO_REACTIONS)
    out: list[AestheticBinding] = [
        point_binding(ids, rng.uniform(1.0, 10.0, size=len(ids)), channel="size", geom="arrow"),
        point_binding(DEMO_METABOLITES, rng.uniform(0.1, 2.0, size=3), channel="color", geom="metabolite"),
        point_binding(DEMO_METABOLITES, rng.uniform(0.1, 2.0, size=3), channel="size", geom="metabolite"),
    ]
    for shift, condition in enumerate(DEMO_CONDITIONS):
        out.append(
            point_binding(ids, rng.normal(shift, 1.0, size=len(ids)), channel="color", geom="arrow", condition=condition)
        )
        samples = [rng.normal(shift * 2.0 + k, 1.0, size=200) for k in range(len(ids))]
        out.append(distribution_binding(ids, samples, channel="y", geom="hist", side="right", condition=condition))
        out.append(
            distribution_binding(ids, samples, channel="y", geom="hist", side="up", popup=True, condition=condition)
        )
        out.append(
            point_binding(
                ids, rng.uniform(0.0, 5.0, size=len(ids)), channel="y", geom="hist", side="left", condition=condition
            )
        )
    return out


def summarize(pipeline: EncodingPipeline, reports: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "load_cycle": pipeline.load_cycle,
        "conditions": list(pipeline.conditions.labels),
        "active": pipeline.conditions.active,
        "ticks": reports,
        "axes": [
            {
                "element_id": axis.element_id,
                "side": axis.side.value,
                "xlimits": list(axis.xlimits),
                "conditions": list(axis.conditions),
                "transform": axis.transform.as_dict(),
            }
            for axis in pipeline.axes.axes()
        ],
        "encodings": [
            {
                "id": enc.encoding_id,
                "kind": enc.kind.value,
                "side": enc.side.value,
                "condition": enc.condition,
                "visible": enc.visible,
                "scale_y": enc.scale_y,
            }
            for enc in pipeline.encodings
        ],
        "encodings_per_side": {side.value: len(pipeline.encodings.on_side(side)) for side in Side},
        "legends": {
            legend.name: {"visible": legend.visible, "min": legend.label_min, "max": legend.label_max}
            for legend in pipeline.legends
        },
        "styles": pipeline.styles.as_dict(),
    }


if __name__ == "__main__":
    main()
