"""Enums and TypedDicts for learning_methods inter-module contracts."""

from enum import Enum
from typing import TypedDict

import torch


class Context(Enum):
    """Mode under which a sample is encoded.

    ``TRAINING`` enables stochastic augmentation.  ``VALIDATION`` and
    ``INFERENCE`` are deterministic.
    """

    TRAINING = "training"
    VALIDATION = "validation"
    INFERENCE = "inference"


class Phase(Enum):
    """Phase of the training loop a schedule is installed for."""

    TRAINING = "training"
    VALIDATION = "validation"


class ClassificationBatch(TypedDict):
    """A single batch from a learning-method DataLoader.

    images: Float tensor of shape (B, C, H, W), normalized per channel.
    targets: Float tensor of shape (B, K), one-hot or multi-hot encoded.
    """

    images: torch.Tensor
    targets: torch.Tensor
