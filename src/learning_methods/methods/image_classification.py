"""Single-label and multi-label image classification learning methods."""

from __future__ import annotations

import random
from collections import Counter
from collections.abc import Callable, Collection, Hashable, Sequence
from typing import Any

import torch
from loguru import logger
from matplotlib.figure import Figure
from PIL import Image
from torch import nn
from torchvision.transforms import v2

from learning_methods.losses import build_loss_fn
from learning_methods.methods.plotting import plot_image
from learning_methods.methods.base import LearningMethod
from learning_methods.models.head import infer_output_shape, vision_head
from learning_methods.transforms import (
    IMAGENET_MEANS,
    IMAGENET_STDS,
    ImagePreprocessing,
    ProjectiveTransforms,
)
from learning_methods.types import Context
from learning_methods.utils.hydra import register

_SINGLE_LABEL_LOSSES = ("cross_entropy", "focal")
_MULTI_LABEL_LOSSES = ("bce", "focal")


class AbstractImageClassification(LearningMethod):
    """Shared logic of the image classification methods.

    Images are resized and cropped to ``size`` (see ``ProjectiveTransforms``)
    and normalized (see ``ImagePreprocessing``).  Subclasses define how
    targets are encoded and predictions decoded.

    Types:
        input: PIL image, ``(H, W)`` / ``(H, W, C)`` array or ``(C, H, W)``
            tensor.  Float pixel values should fall in ``[0, 1]``.
        x: Float tensor ``(3, *size)``, normalized per channel.
        y: Float tensor ``(len(classes),)``.

    Model sizes:
        Full model: ``(B, 3, *size) -> (B, len(classes))``.
        Backbone: ``(B, 3, *size) -> (B, ch, h, w)``.

    Do not end custom models with a softmax or sigmoid; ``loss_function``
    expects logits.

    Args:
        classes: Ordered class labels. The order defines the target index.
        size: Target ``(height, width)`` of encoded inputs.
        aug_projection: Projective augmentation applied during training.
            See ``augs_projection``.
        aug_image: Photometric augmentation applied during training.
            See ``augs_lighting``.
        means: Channel means used for normalization.
        stds: Channel standard deviations used for normalization.
    """

    def __init__(
        self,
        classes: Sequence[Hashable],
        size: int | Sequence[int] = (224, 224),
        *,
        aug_projection: v2.Transform | None = None,
        aug_image: v2.Transform | None = None,
        means: Sequence[float] = IMAGENET_MEANS,
        stds: Sequence[float] = IMAGENET_STDS,
    ) -> None:
        self.classes: tuple[Hashable, ...] = tuple(classes)
        if not self.classes:
            raise ValueError("classes must not be empty")
        self._class_to_idx = {c: i for i, c in enumerate(self.classes)}
        if len(self._class_to_idx) != len(self.classes):
            dupes = [c for c, n in Counter(self.classes).items() if n > 1]
            raise ValueError(f"classes must be unique, got duplicates {dupes}")

        self.projections = ProjectiveTransforms(size, augmentations=aug_projection)
        self.image_preprocessing = ImagePreprocessing(
            means=means, stds=stds, augmentations=aug_image
        )
        logger.debug(
            f"{type(self).__name__}: {len(self.classes)} classes, "
            f"size={self.projections.size}"
        )

    @property
    def size(self) -> tuple[int, int]:
        return self.projections.size

    def class_index(self, category: Hashable) -> int:
        """Index of ``category`` in ``classes``; ``KeyError`` if absent."""
        try:
            return self._class_to_idx[category]
        except (KeyError, TypeError):
            raise KeyError(
                f"category {category!r} could not be found in classes"
            ) from None

    # Core interface

    def encode_input(self, context: Context, image: Any) -> torch.Tensor:
        cropped = self.projections.run(context, image)
        return self.image_preprocessing.run(context, cropped)

    def encode_input_(
        self, x: torch.Tensor, context: Context, image: Any
    ) -> torch.Tensor:
        """In-place ``encode_input`` writing into the caller-owned ``x``."""
        cropped = self.projections.run(context, image)
        return self.image_preprocessing.run(context, cropped, out=x)

    # Training interface

    def build_model(self, backbone: nn.Module) -> nn.Sequential:
        """Attach a classification head to a convolutional ``backbone``.

        The backbone's output channels are inferred by running a
        ``(1, 3, *size)`` tensor through it.  Input and output sizes of the
        result are ``(B, 3, *size)`` and ``(B, len(classes))``.
        """
        input_shape = (1, 3, *self.size)
        try:
            out_shape = infer_output_shape(backbone, input_shape)
        except RuntimeError as e:
            raise ValueError(
                f"Backbone failed on an input of shape {input_shape}: {e}"
            ) from e
        if len(out_shape) != 4:
            raise ValueError(
                f"Backbone must output (B, ch, h, w) for input {input_shape}, "
                f"got shape {out_shape}"
            )
        head = vision_head(out_shape[1], len(self.classes), p=0.0)
        logger.debug(
            f"Built model: backbone output {out_shape} -> {len(self.classes)} classes"
        )
        return nn.Sequential(backbone, head)

    # Testing interface

    def mock_input(self) -> Image.Image:
        """Random RGB image with each side in ``[size, 2 * size)``."""
        h, w = (int(torch.randint(s, 2 * s, ())) for s in self.size)
        pixels = torch.randint(0, 256, (h, w, 3), dtype=torch.uint8).numpy()
        return Image.fromarray(pixels)

    def mock_model(self) -> Callable[[torch.Tensor], torch.Tensor]:
        n_classes = len(self.classes)

        def model(xs: torch.Tensor) -> torch.Tensor:
            return torch.rand(xs.shape[0], n_classes)

        return model

    # Plotting interface

    def plot_sample(self, sample: tuple[Any, Any]) -> Figure:
        image, target = sample
        return plot_image(image, title=str(target))

    def plot_xy(self, x: torch.Tensor, y: torch.Tensor) -> Figure:
        image = self.image_preprocessing.invert(x)
        target = self.decode_prediction(Context.VALIDATION, y)
        return plot_image(image, title=str(target))

    def plot_prediction(
        self, x: torch.Tensor, y_pred: torch.Tensor, y: torch.Tensor
    ) -> Figure:
        image = self.image_preprocessing.invert(x)
        target = self.decode_prediction(Context.VALIDATION, y)
        target_pred = self.decode_prediction(Context.VALIDATION, y_pred)
        return plot_image(image, title=f"Pred: {target_pred} | GT: {target}")

    def __repr__(self) -> str:
        classes = ", ".join(repr(c) for c in self.classes)
        if len(classes) > 80:
            classes = classes[:77] + "..."
        return (
            f"{type(self).__name__}(\n"
            f"  classes=[{classes}],\n"
            f"  projections={self.projections!r},\n"
            f"  image_preprocessing={self.image_preprocessing!r}\n)"
        )


@register(group="method", name="image_classification", size=[224, 224])
class ImageClassification(AbstractImageClassification):
    """Single-label image classification.

    Given an image and a set of ``classes``, determine which class the image
    falls into, e.g. whether an image shows a dog or a cat.

    Targets are single classes and are encoded one-hot; predictions are
    decoded with ``argmax`` (ties resolve to the lowest index).

    Args:
        loss: ``"cross_entropy"`` (default) or ``"focal"``.
        label_smoothing: Label smoothing passed to the loss.
        **kwargs: See ``AbstractImageClassification``.
    """

    def __init__(
        self,
        classes: Sequence[Hashable],
        size: int | Sequence[int] = (224, 224),
        *,
        loss: str = "cross_entropy",
        label_smoothing: float = 0.0,
        **kwargs: Any,
    ) -> None:
        if loss not in _SINGLE_LABEL_LOSSES:
            raise ValueError(f"loss must be one of {_SINGLE_LABEL_LOSSES}, got {loss!r}")
        super().__init__(classes, size, **kwargs)
        self.loss = loss
        self.label_smoothing = label_smoothing

    def encode_target(self, context: Context, category: Hashable) -> torch.Tensor:
        y = torch.zeros(len(self.classes), dtype=torch.float32)
        y[self.class_index(category)] = 1.0
        return y

    def encode_target_(
        self, y: torch.Tensor, context: Context, category: Hashable
    ) -> torch.Tensor:
        """In-place ``encode_target``: zero ``y`` and set the class entry."""
        idx = self.class_index(category)
        y.zero_()
        y[idx] = 1.0
        return y

    def decode_prediction(self, context: Context, y: Any) -> Hashable:
        scores = torch.as_tensor(y)
        return self.classes[int(torch.argmax(scores))]

    def loss_function(self) -> nn.Module:
        return build_loss_fn(self.loss, label_smoothing=self.label_smoothing)

    def mock_target(self) -> Hashable:
        return random.choice(self.classes)  # noqa: S311


@register(group="method", name="image_classification_multi", size=[224, 224])
class ImageClassificationMulti(AbstractImageClassification):
    """Multi-label image classification.

    Targets are collections of classes and are encoded multi-hot.  A class is
    predicted when the sigmoid of its score exceeds ``threshold``.

    Args:
        threshold: Probability above which a class is predicted.
        loss: ``"bce"`` (default) or ``"focal"`` (sigmoid focal loss).
        label_smoothing: Label smoothing passed to the focal loss.
        **kwargs: See ``AbstractImageClassification``.
    """

    def __init__(
        self,
        classes: Sequence[Hashable],
        size: int | Sequence[int] = (224, 224),
        *,
        threshold: float = 0.5,
        loss: str = "bce",
        label_smoothing: float = 0.0,
        **kwargs: Any,
    ) -> None:
        if not 0.0 < threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {threshold}")
        if loss not in _MULTI_LABEL_LOSSES:
            raise ValueError(f"loss must be one of {_MULTI_LABEL_LOSSES}, got {loss!r}")
        super().__init__(classes, size, **kwargs)
        self.threshold = threshold
        self.loss = loss
        self.label_smoothing = label_smoothing

    def encode_target(
        self, context: Context, categories: Collection[Hashable]
    ) -> torch.Tensor:
        y = torch.zeros(len(self.classes), dtype=torch.float32)
        return self.encode_target_(y, context, categories)

    def encode_target_(
        self, y: torch.Tensor, context: Context, categories: Collection[Hashable]
    ) -> torch.Tensor:
        indices = [self.class_index(c) for c in categories]
        y.zero_()
        y[indices] = 1.0
        return y

    def decode_prediction(self, context: Context, y: Any) -> list[Hashable]:
        probs = torch.sigmoid(torch.as_tensor(y, dtype=torch.float32))
        return [c for c, p in zip(self.classes, probs.tolist()) if p > self.threshold]

    def loss_function(self) -> nn.Module:
        if self.loss == "focal":
            return build_loss_fn("focal_multilabel", label_smoothing=self.label_smoothing)
        return build_loss_fn("bce")

    def mock_target(self) -> list[Hashable]:
        k = random.randint(1, len(self.classes))  # noqa: S311
        chosen = set(random.sample(range(len(self.classes)), k))  # noqa: S311
        return [c for i, c in enumerate(self.classes) if i in chosen]
