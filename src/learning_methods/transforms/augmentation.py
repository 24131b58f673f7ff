"""Stock augmentation pipelines for image learning methods.

``augs_projection`` changes geometry and belongs in the projective stage;
``augs_lighting`` changes pixel intensities and belongs in preprocessing.
"""

from __future__ import annotations

from typing import Any

from torchvision.transforms import v2


def augs_projection(
    flip: bool = True,
    max_rotation: float = 10.0,
    max_zoom: float = 1.5,
) -> v2.Transform:
    """Random flip, rotation and zoom-in.

    Args:
        flip: Randomly mirror images horizontally.
        max_rotation: Maximum rotation in degrees (0 disables).
        max_zoom: Maximum zoom factor, must be ``>= 1`` (1 disables).
    """
    if max_zoom < 1.0:
        raise ValueError(f"max_zoom must be >= 1, got {max_zoom}")
    steps: list[Any] = []
    if flip:
        steps.append(v2.RandomHorizontalFlip())
    if max_rotation > 0:
        steps.append(v2.RandomRotation(max_rotation))
    if max_zoom > 1.0:
        steps.append(v2.RandomAffine(degrees=0.0, scale=(1.0, max_zoom)))
    if not steps:
        return v2.Identity()
    return v2.Compose(steps)


def augs_lighting(intensity: float = 0.2, contrast: float = 0.2) -> v2.ColorJitter:
    """Random brightness and contrast jitter."""
    if intensity < 0 or contrast < 0:
        raise ValueError(
            f"intensity ({intensity}) and contrast ({contrast}) must be >= 0"
        )
    return v2.ColorJitter(brightness=intensity, contrast=contrast)
