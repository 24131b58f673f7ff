"""Data pipeline for learning_methods."""

from learning_methods.data.datamodule import MethodDataModule
from learning_methods.data.dataset import (
    EncodedDataset,
    ImageFolderSamples,
    discover_classes,
)

__all__ = [
    "EncodedDataset",
    "ImageFolderSamples",
    "MethodDataModule",
    "discover_classes",
]
