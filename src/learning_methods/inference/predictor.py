"""Predictor: encode images, run a model, decode its outputs."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import torch
from torch import nn

from learning_methods.methods.image_classification import AbstractImageClassification
from learning_methods.schemas.prediction import ClassificationPrediction
from learning_methods.types import Context


class Predictor:
    """Run ``model`` on raw images and decode with ``method``.

    Images are encoded in ``Context.INFERENCE`` (deterministic resize and
    center crop); a ``nn.Module`` model is switched to eval mode.

    Args:
        method: Image classification method the model was trained with.
        model: ``(B, 3, H, W) -> (B, len(classes))`` callable.
        device: Device the model runs on.
    """

    def __init__(
        self,
        method: AbstractImageClassification,
        model: nn.Module | Callable[[torch.Tensor], torch.Tensor],
        device: str | torch.device = "cpu",
    ) -> None:
        self.method = method
        self.device = torch.device(device)
        if isinstance(model, nn.Module):
            model = model.to(self.device).eval()
        self.model = model

    def _scores(self, images: list[Any]) -> torch.Tensor:
        xs = torch.stack(
            [self.method.encode_input(Context.INFERENCE, img) for img in images]
        ).to(self.device)
        with torch.no_grad():
            return self.model(xs).cpu()

    def predict(self, image: Any) -> Any:
        """Decoded prediction for a single image."""
        return self.predict_batch([image])[0]

    def predict_batch(self, images: list[Any]) -> list[Any]:
        """Batched inference with one forward pass for all images."""
        if not images:
            return []
        scores = self._scores(images)
        return [
            self.method.decode_prediction(Context.INFERENCE, row) for row in scores
        ]

    def top_k(self, image: Any, k: int = 5) -> list[ClassificationPrediction]:
        """Top-``k`` classes by softmax probability, descending."""
        probs = torch.softmax(self._scores([image])[0], dim=-1)
        k = min(k, len(self.method.classes))
        confidences, indices = torch.topk(probs, k)
        return [
            ClassificationPrediction(
                class_id=int(idx),
                label=str(self.method.classes[int(idx)]),
                confidence=float(conf),
            )
            for conf, idx in zip(confidences, indices)
        ]