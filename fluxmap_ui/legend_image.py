from __future__ import annotations

import io

from PIL import Image
import torch

from fluxmap_plot.color import Color
from fluxmap_plot.gradient import Gradient


def _grid(width: int, height: int) -> tuple[torch.Tensor, torch.Tensor]:
    if width <= 0 or height <= 0:
        raise ValueError("legend dimensions must be > 0")
    grid_x = torch.arange(width, dtype=torch.float32).unsqueeze(0).expand(height, width) + 0.5
    grid_y = torch.arange(height, dtype=torch.float32).unsqueeze(1).expand(height, width) + 0.5
    return grid_x, grid_y


def arrow_mask(width: int, height: int) -> torch.Tensor:
    """Right-pointing arrow: a half-height shaft and a triangular head on the last fifth."""

    grid_x, grid_y = _grid(width, height)
    mid = height / 2.0
    head_start = width * 0.8
    shaft = (grid_x < head_start) & ((grid_y - mid).abs() <= height / 4.0)
    # head narrows linearly from full height at head_start to a point at the tip
    half_span = (width - grid_x) / (width - head_start) * mid
    head = (grid_x >= head_start) & ((grid_y - mid).abs() <= half_span)
    return shaft | head


def circle_mask(width: int, height: int) -> torch.Tensor:
    grid_x, grid_y = _grid(width, height)
    rx = width / 2.0
    ry = height / 2.0
    return ((grid_x - rx) / rx) ** 2 + ((grid_y - ry) / ry) ** 2 <= 1.0


def box_mask(width: int, height: int, *, border: int = 1) -> torch.Tensor:
    grid_x, grid_y = _grid(width, height)
    return (grid_x >= border) & (grid_x <= width - border) & (grid_y >= border) & (grid_y <= height - border)


def blank_image(mask: torch.Tensor) -> torch.Tensor:
    """Opaque white wherever the mask is set, transparent elsewhere."""

    height, width = mask.shape
    image = torch.zeros((height, width, 4), dtype=torch.uint8)
    image[mask] = 255
    return image


def paint_gradient(image: torch.Tensor, gradient: Gradient, mask: torch.Tensor) -> torch.Tensor:
    """Color each column by sampling `gradient` across the image width.

    Pixels outside `mask` stay transparent so the legend keeps its silhouette
    whatever alpha the gradient carries.
    """

    height, width, _ = image.shape
    colors = torch.from_numpy(gradient.sample_rgba8(width)).view(1, width, 4).expand(height, width, 4)
    keep = mask.unsqueeze(-1)
    return torch.where(keep, colors, torch.zeros_like(image))


def paint_solid(image: torch.Tensor, color: Color, mask: torch.Tensor) -> torch.Tensor:
    height, width, _ = image.shape
    rgba = torch.tensor(color.to_rgba8(), dtype=torch.uint8).view(1, 1, 4).expand(height, width, 4)
    keep = mask.unsqueeze(-1)
    return torch.where(keep, rgba, torch.zeros_like(image))


def png_bytes(image: torch.Tensor) -> bytes:
    arr = image.detach().cpu().contiguous().numpy()
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()
