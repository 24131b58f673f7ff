"""Inference with a trained model and its learning method."""

from learning_methods.inference.predictor import Predictor

__all__ = ["Predictor"]
