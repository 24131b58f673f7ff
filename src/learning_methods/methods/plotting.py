"""Matplotlib rendering for the learning-method plotting hooks."""

from __future__ import annotations

from typing import Any

import numpy as np
import torch
from matplotlib.figure import Figure
from PIL import Image


def _as_array(image: Any) -> np.ndarray:  # type: ignore[type-arg]
    if isinstance(image, Image.Image):
        return np.asarray(image)
    if isinstance(image, torch.Tensor):
        arr = image.detach().cpu()
        if arr.ndim == 3 and arr.shape[0] in (1, 3, 4):
            arr = arr.permute(1, 2, 0)
        return arr.squeeze(-1).numpy() if arr.shape[-1] == 1 else arr.numpy()
    return np.asarray(image)


def plot_image(image: Any, title: str = "", figsize: tuple[float, float] = (4, 4)) -> Figure:
    """Render ``image`` on a single axis without ticks, titled ``title``."""
    fig = Figure(figsize=figsize)
    ax = fig.add_subplot()
    arr = _as_array(image)
    ax.imshow(arr, cmap="gray" if arr.ndim == 2 else None)
    ax.set_title(title, fontsize=12)
    ax.axis("off")
    return fig
