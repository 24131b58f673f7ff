"""Torchvision v2 transform stages used by the learning methods.

Projective transforms bring an image of any size to a fixed spatial size;
preprocessing scales and normalizes it into a model-ready tensor.
"""

from learning_methods.transforms.augmentation import augs_lighting, augs_projection
from learning_methods.transforms.preprocessing import (
    IMAGENET_MEANS,
    IMAGENET_STDS,
    ImagePreprocessing,
)
from learning_methods.transforms.projective import ProjectiveTransforms

__all__ = [
    "IMAGENET_MEANS",
    "IMAGENET_STDS",
    "ImagePreprocessing",
    "ProjectiveTransforms",
    "augs_lighting",
    "augs_projection",
]
