from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import numpy as np
import torch

from fluxmap_plot.errors import EmptySampleError, PlotDataError


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]


def coerce_points(values: Any, *, label: str = "values") -> np.ndarray:
    """One scalar per identifier as a 1-D float64 array (non-numeric -> error, None -> nan)."""

    return _coerce_1d_numeric(values, label=label)


def coerce_distributions(values: Any, *, label: str = "values") -> list[np.ndarray]:
    """One sample set per identifier; each set becomes a 1-D float64 array."""

    if pd is not None and isinstance(values, pd.DataFrame):
        return [_coerce_1d_numeric(values[col], label=f"{label}[{col}]") for col in values.columns]
    if isinstance(values, torch.Tensor) or isinstance(values, np.ndarray):
        if values.ndim != 2:
            raise PlotDataError(f"{label} must be 2-D when given as an array")
        return [_coerce_1d_numeric(row, label=f"{label}[{i}]") for i, row in enumerate(values)]
    if isinstance(values, Sequence) and not isinstance(values, (str, bytes, bytearray)):
        return [_coerce_1d_numeric(row, label=f"{label}[{i}]") for i, row in enumerate(values)]
    raise PlotDataError(f"unsupported {label} input type: {type(values)!r}")


def _coerce_1d_numeric(value: Any, *, label: str) -> np.ndarray:
    if isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.ndim != 1:
            raise PlotDataError(f"{label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.to(torch.float64).numpy()

    if pd is not None and isinstance(value, pd.Series):
        return _coerce_ndarray(value.to_numpy(), label=label)

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise PlotDataError(f"{label} must be 1-D")
        return _coerce_ndarray(value, label=label)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return _coerce_ndarray(np.asarray(list(value), dtype=object).reshape(-1), label=label)

    raise PlotDataError(f"unsupported {label} input type: {type(value)!r}")


def _coerce_ndarray(arr: np.ndarray, *, label: str) -> np.ndarray:
    if arr.dtype.kind in {"i", "u", "f", "b"}:
        return arr.astype(np.float64, copy=True)

    out = np.empty(arr.shape[0], dtype=np.float64)
    for i, raw in enumerate(arr.tolist()):
        if raw is None:
            out[i] = np.nan
            continue
        if isinstance(raw, Decimal):
            out[i] = float(raw)
            continue
        try:
            out[i] = float(raw)
        except (TypeError, ValueError) as exc:
            raise PlotDataError(f"{label} contains non-numeric value at index {i}: {raw!r}") from exc
    return out


def require_finite(values: np.ndarray, *, label: str = "values") -> np.ndarray:
    """Finite entries of `values`; raises EmptySampleError when there are none."""

    arr = np.asarray(values, dtype=np.float64).ravel()
    finite = arr[np.isfinite(arr)]
    if finite.size == 0:
        raise EmptySampleError(f"{label} has no finite values")
    return finite
