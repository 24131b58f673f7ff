"""Projective crop/resize stage for image learning methods."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import torch
from torchvision import tv_tensors
from torchvision.transforms import v2

from learning_methods.types import Context


def as_size(size: int | Sequence[int]) -> tuple[int, int]:
    """Normalize an ``int`` or ``(h, w)`` sequence to an ``(h, w)`` tuple."""
    if isinstance(size, int):
        size = (size, size)
    if len(size) != 2 or any(int(s) <= 0 for s in size):
        raise ValueError(f"size must be a positive (height, width) pair, got {size}")
    return int(size[0]), int(size[1])


def to_image(image: Any) -> tv_tensors.Image:
    """Convert a PIL image, ``(H, W[, C])`` array or ``(C, H, W)`` tensor."""
    if isinstance(image, tv_tensors.Image):
        return image
    return v2.ToImage()(image)  # type: ignore[no-any-return]


class ProjectiveTransforms:
    """Resize and crop an image to exactly ``size``.

    Training: resize the shortest side to ``max(size)``, apply the projective
    ``augmentations``, then random crop to ``size``.
    Validation/inference: same resize followed by a deterministic center crop.

    The output spatial size is ``size`` regardless of the input size; the
    random crop pads if an augmentation shrank the image.

    Args:
        size: Target ``(height, width)`` or a single int for square outputs.
        augmentations: Optional v2 transform applied during training only.
    """

    def __init__(
        self,
        size: int | Sequence[int] = (224, 224),
        augmentations: v2.Transform | None = None,
    ) -> None:
        self.size = as_size(size)
        self.augmentations = augmentations

        resize = v2.Resize(max(self.size), antialias=True)
        train_steps: list[Any] = [resize]
        if augmentations is not None:
            train_steps.append(augmentations)
        train_steps.append(v2.RandomCrop(self.size, pad_if_needed=True))
        self._train = v2.Compose(train_steps)
        self._eval = v2.Compose([resize, v2.CenterCrop(self.size)])

    def run(self, context: Context, image: Any) -> torch.Tensor:
        """Apply the context's pipeline and return a ``(C, *size)`` image."""
        img = to_image(image)
        if context is Context.TRAINING:
            return self._train(img)  # type: ignore[no-any-return]
        return self._eval(img)  # type: ignore[no-any-return]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={self.size}, "
            f"augmentations={self.augmentations!r})"
        )
