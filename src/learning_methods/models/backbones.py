"""ResNet feature-extractor backbones."""

from __future__ import annotations

import torch
import torchvision.models as tv_models
from torch import nn

from learning_methods.utils.hydra import register

_RESNETS = {
    18: (tv_models.resnet18, tv_models.ResNet18_Weights),
    34: (tv_models.resnet34, tv_models.ResNet34_Weights),
    50: (tv_models.resnet50, tv_models.ResNet50_Weights),
}


@register(group="backbone", name="resnet18", depth=18, pretrained=True)
@register(group="backbone", name="resnet34", depth=34, pretrained=True)
@register(group="backbone", name="resnet50", depth=50, pretrained=True)
class ResNetBackbone(nn.Module):
    """Torchvision ResNet without its pooling and fully connected layers.

    Maps ``(B, 3, H, W)`` to ``(B, C, H / 32, W / 32)`` with ``C = 512`` for
    depths 18 and 34 and ``C = 2048`` for depth 50.
    Pass pretrained=False in tests to skip the ImageNet weight download.
    """

    def __init__(self, depth: int = 18, pretrained: bool = True) -> None:
        super().__init__()
        if depth not in _RESNETS:
            raise ValueError(
                f"Unsupported ResNet depth {depth}; choose from {sorted(_RESNETS)}"
            )
        factory, weights_enum = _RESNETS[depth]
        weights = weights_enum.DEFAULT if pretrained else None
        resnet = factory(weights=weights)
        self.depth = depth
        self.out_channels: int = resnet.fc.in_features
        self.features = nn.Sequential(*list(resnet.children())[:-2])

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        return self.features(images)  # type: ignore[no-any-return]
