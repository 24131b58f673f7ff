"""Learning methods: the encode/decode contract between samples and models."""

from learning_methods.methods.base import LearningMethod, check_contract
from learning_methods.methods.image_classification import (
    AbstractImageClassification,
    ImageClassification,
    ImageClassificationMulti,
)

__all__ = [
    "AbstractImageClassification",
    "ImageClassification",
    "ImageClassificationMulti",
    "LearningMethod",
    "check_contract",
]
