"""Abstract base class for learning methods."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import torch
from torch import nn

from learning_methods.types import Context


class LearningMethod(ABC):
    """Capability set bridging raw samples and model tensors for one task type.

    Subclasses must implement ``encode_input``, ``encode_target`` and
    ``decode_prediction``.  Training support (``build_model``,
    ``loss_function``) and the testing hooks (``mock_*``) are optional;
    the defaults raise ``NotImplementedError``.

    A method is configured at construction time and not mutated afterwards.
    """

    def encode(self, context: Context, sample: tuple[Any, Any]) -> tuple[Any, Any]:
        """Encode a raw ``(input, target)`` sample into ``(x, y)``."""
        input_, target = sample
        return (
            self.encode_input(context, input_),
            self.encode_target(context, target),
        )

    @abstractmethod
    def encode_input(self, context: Context, input_: Any) -> Any:
        """Encode a raw input into a model input ``x``."""

    @abstractmethod
    def encode_target(self, context: Context, target: Any) -> Any:
        """Encode a raw target into a model target ``y``."""

    @abstractmethod
    def decode_prediction(self, context: Context, y: Any) -> Any:
        """Decode a model output for a single sample into a raw target."""

    def build_model(self, backbone: nn.Module) -> nn.Module:
        raise NotImplementedError(f"{type(self).__name__} does not implement build_model")

    def loss_function(self) -> nn.Module:
        raise NotImplementedError(
            f"{type(self).__name__} does not implement loss_function"
        )

    # Testing interface

    def mock_sample(self) -> tuple[Any, Any]:
        return self.mock_input(), self.mock_target()

    def mock_input(self) -> Any:
        raise NotImplementedError(f"{type(self).__name__} does not implement mock_input")

    def mock_target(self) -> Any:
        raise NotImplementedError(f"{type(self).__name__} does not implement mock_target")

    def mock_model(self) -> Callable[[torch.Tensor], torch.Tensor]:
        raise NotImplementedError(f"{type(self).__name__} does not implement mock_model")


def check_contract(
    method: LearningMethod,
    model: Callable[[torch.Tensor], torch.Tensor] | None = None,
    context: Context = Context.VALIDATION,
) -> Any:
    """Encode a mock sample, run it through a model and decode the output.

    Uses ``method.mock_model()`` when ``model`` is ``None``.  Raises
    ``ValueError`` if the model output does not match the encoded target's
    shape.  Returns the decoded prediction.
    """
    x, y = method.encode(context, method.mock_sample())
    if model is None:
        model = method.mock_model()

    was_training = isinstance(model, nn.Module) and model.training
    if isinstance(model, nn.Module):
        model.eval()
    try:
        with torch.no_grad():
            y_pred = model(x.unsqueeze(0))
    finally:
        if isinstance(model, nn.Module):
            model.train(was_training)

    if tuple(y_pred.shape[1:]) != tuple(y.shape):
        raise ValueError(
            f"Model output shape {tuple(y_pred.shape[1:])} does not match "
            f"encoded target shape {tuple(y.shape)}"
        )
    return method.decode_prediction(context, y_pred[0])
