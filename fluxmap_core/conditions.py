from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Iterable

from fluxmap_core.model import ALL_CONDITIONS, AestheticBinding

LOGGER = logging.getLogger(__name__)


@dataclass
class ConditionState:
    """Known condition labels and the one currently selected."""

    labels: list[str] = field(default_factory=lambda: [""])
    active: str = ""

    def select(self, label: str) -> None:
        if label not in self.labels:
            raise ValueError(f"unknown condition `{label}`; known: {self.labels}")
        self.active = label

    def reset(self) -> None:
        self.labels = [""]
        self.active = ""


def fill_conditions(bindings: Iterable[AestheticBinding], state: ConditionState) -> bool:
    """Sync the condition menu with the labels found on `bindings`.

    Returns True when the state changed.
    """

    derived: list[str] = []
    for binding in bindings:
        if binding.condition is not None and binding.condition not in derived:
            derived.append(binding.condition)

    if not derived:
        if state.labels == [""] and state.active == "":
            return False
        state.reset()
        return True

    if all(label in state.labels for label in derived):
        return False

    state.labels = derived + [ALL_CONDITIONS]
    if state.active not in state.labels or state.active == "":
        state.active = state.labels[0]
    LOGGER.info("conditions updated: %s (active=%s)", state.labels, state.active)
    return True
