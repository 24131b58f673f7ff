"""Scaling, photometric augmentation and channel normalization stage."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
import torch
from torchvision import tv_tensors
from torchvision.transforms import v2

from learning_methods.transforms.projective import to_image
from learning_methods.types import Context

IMAGENET_MEANS: tuple[float, float, float] = (0.485, 0.456, 0.406)
IMAGENET_STDS: tuple[float, float, float] = (0.229, 0.224, 0.225)


class ImagePreprocessing:
    """Turn a cropped image into a normalized float tensor.

    Pixel values are scaled to ``[0, 1]`` (integer images are divided by their
    max value, float images are kept as-is), photometric ``augmentations`` are
    applied in training context only, and each channel is normalized as
    ``(v - mean) / std``.  Single-channel images are repeated to ``channels``
    and an alpha channel is dropped.

    Args:
        means: Per-channel means.
        stds: Per-channel standard deviations.
        augmentations: Optional v2 transform working on float images.
        channels: Number of output channels.
        dtype: Floating point output dtype.
    """

    def __init__(
        self,
        means: Sequence[float] = IMAGENET_MEANS,
        stds: Sequence[float] = IMAGENET_STDS,
        augmentations: v2.Transform | None = None,
        channels: int = 3,
        dtype: torch.dtype = torch.float32,
    ) -> None:
        if len(means) != channels or len(stds) != channels:
            raise ValueError(
                f"means ({len(means)}) and stds ({len(stds)}) must both have "
                f"one entry per channel ({channels})"
            )
        if any(s <= 0 for s in stds):
            raise ValueError(f"stds must be positive, got {tuple(stds)}")
        self.means = tuple(float(m) for m in means)
        self.stds = tuple(float(s) for s in stds)
        self.augmentations = augmentations
        self.channels = channels
        self.dtype = dtype
        self._to_dtype = v2.ToDtype(dtype, scale=True)
        self._mean = torch.tensor(self.means, dtype=dtype).view(-1, 1, 1)
        self._std = torch.tensor(self.stds, dtype=dtype).view(-1, 1, 1)

    def _match_channels(self, image: torch.Tensor) -> tv_tensors.Image:
        ch = image.shape[-3]
        if ch == self.channels:
            return tv_tensors.Image(image)
        if ch == 1:
            return tv_tensors.Image(image.repeat(self.channels, 1, 1))
        if ch == self.channels + 1:
            return tv_tensors.Image(image[: self.channels])
        raise ValueError(f"Cannot map a {ch}-channel image to {self.channels} channels")

    def run(
        self,
        context: Context,
        image: Any,
        out: torch.Tensor | None = None,
    ) -> torch.Tensor:
        """Normalize ``image``, writing into ``out`` when it is given."""
        img = self._to_dtype(self._match_channels(to_image(image)))
        if context is Context.TRAINING and self.augmentations is not None:
            img = self.augmentations(img)
        x = img.as_subclass(torch.Tensor)
        if out is None:
            return (x - self._mean) / self._std
        if out.shape != x.shape:
            raise ValueError(
                f"Output buffer has shape {tuple(out.shape)}, "
                f"expected {tuple(x.shape)}"
            )
        torch.sub(x, self._mean, out=out)
        return out.div_(self._std)

    def invert(self, x: torch.Tensor) -> np.ndarray:  # type: ignore[type-arg]
        """Undo normalization for display: ``(H, W, C)`` array in ``[0, 1]``."""
        x = x.detach().cpu().to(self.dtype)
        image = (x * self._std + self._mean).clamp(0.0, 1.0)
        arr = image.permute(1, 2, 0).numpy()
        if arr.shape[-1] == 1:
            return arr[..., 0]  # type: ignore[no-any-return]
        return arr  # type: ignore[no-any-return]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(means={self.means}, stds={self.stds}, "
            f"channels={self.channels}, augmentations={self.augmentations!r})"
        )
