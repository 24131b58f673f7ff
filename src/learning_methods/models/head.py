"""Classification head and backbone size inference."""

from __future__ import annotations

from collections.abc import Sequence

import torch
from torch import nn


class AdaptiveConcatPool2d(nn.Module):
    """Concatenate adaptive average and max pooling along the channel axis.

    ``(B, C, H, W) -> (B, 2 * C, size, size)``.
    """

    def __init__(self, size: int = 1) -> None:
        super().__init__()
        self.avg = nn.AdaptiveAvgPool2d(size)
        self.max = nn.AdaptiveMaxPool2d(size)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return torch.cat([self.max(x), self.avg(x)], dim=1)


def vision_head(
    in_channels: int,
    n_classes: int,
    p: float = 0.0,
    hidden: int = 512,
) -> nn.Sequential:
    """Head mapping a ``(B, in_channels, h, w)`` feature map to ``(B, n_classes)`` logits.

    No softmax is applied; pair with a loss that takes logits.
    """
    return nn.Sequential(
        AdaptiveConcatPool2d(),
        nn.Flatten(),
        nn.BatchNorm1d(2 * in_channels),
        nn.Dropout(p),
        nn.Linear(2 * in_channels, hidden),
        nn.ReLU(inplace=True),
        nn.BatchNorm1d(hidden),
        nn.Dropout(p),
        nn.Linear(hidden, n_classes),
    )


def infer_output_shape(
    module: nn.Module, input_shape: Sequence[int]
) -> tuple[int, ...]:
    """Run a zero tensor of ``input_shape`` through ``module`` and return the output shape.

    The module is evaluated in eval mode without gradients; its previous
    training flag is restored afterwards.
    """
    was_training = module.training
    module.eval()
    try:
        param = next(module.parameters(), None)
        device = param.device if param is not None else torch.device("cpu")
        with torch.no_grad():
            out = module(torch.zeros(*input_shape, device=device))
    finally:
        module.train(was_training)
    return tuple(out.shape)
