from __future__ import annotations

from typing import Iterable

from fluxmap_core.axes import AxisRegistry
from fluxmap_core.encodings import EncodingStore
from fluxmap_core.model import condition_visible


def filter_histograms(store: EncodingStore, active: str) -> int:
    """Hide side encodings of other conditions. Returns how many stay visible."""

    shown = 0
    for encoding in store.side_encodings():
        encoding.visible = condition_visible(encoding.condition, active)
        shown += int(encoding.visible)
    return shown


def show_hover(store: EncodingStore, hovered: Iterable[str], active: str) -> int:
    """Show the popups of hovered nodes whose condition is active."""

    hovered = set(hovered)
    shown = 0
    for encoding in store.popups():
        encoding.visible = encoding.node_id in hovered and condition_visible(encoding.condition, active)
        shown += int(encoding.visible)
    return shown


def follow_the_axes(registry: AxisRegistry, store: EncodingStore) -> int:
    """Move side encodings onto axes the user dragged or rotated since the last tick."""

    moved = 0
    for axis in registry.take_moved():
        for encoding in store.side_encodings():
            if encoding.node_id != axis.node_id or encoding.side is not axis.side:
                continue
            encoding.transform = encoding.transform.moved_to(axis.transform)
            moved += 1
    return moved
