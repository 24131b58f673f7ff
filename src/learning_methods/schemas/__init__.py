"""Prediction schemas."""

from learning_methods.schemas.prediction import ClassificationPrediction

__all__ = ["ClassificationPrediction"]
