"""Backbones and task heads for learning-method models."""

import learning_methods.models.backbones  # noqa: F401  # register with Hydra
from learning_methods.models.backbones import ResNetBackbone
from learning_methods.models.head import (
    AdaptiveConcatPool2d,
    infer_output_shape,
    vision_head,
)

__all__ = [
    "AdaptiveConcatPool2d",
    "ResNetBackbone",
    "infer_output_shape",
    "vision_head",
]
