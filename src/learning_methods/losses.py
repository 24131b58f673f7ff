"""Loss functions over encoded classification targets.

Learning methods encode targets as float tensors of shape ``(B, C)``:
one-hot for single-label classification, multi-hot for multi-label.  All
losses here take raw logits of the same shape.
"""

from __future__ import annotations

import torch
import torch.nn as nn
import torch.nn.functional as F


class FocalLoss(nn.Module):
    """Focal loss on one-hot or multi-hot targets.

    Down-weights confidently classified entries by ``(1 - p) ** gamma`` so
    training focuses on the hard ones.

    With ``multilabel=False`` the classes compete through a softmax and each
    row of the target is a probability distribution (one-hot, smoothed, or
    soft).  Class indices of shape ``(B,)`` are accepted and converted to
    one-hot.  The loss per sample is
    ``-sum_c w_c * t_c * (1 - p_c) ** gamma * log(p_c)``.

    With ``multilabel=True`` every class is an independent sigmoid and the
    target is multi-hot.  The loss per entry is
    ``w_c * (1 - p_t) ** gamma * bce``, where ``p_t`` is the probability
    assigned to the true state of the entry.

    ``gamma=0`` reduces to cross-entropy with probability targets or to
    binary cross-entropy, respectively.

    Parameters
    ----------
    gamma:
        Focusing parameter.  Higher values increase focus on hard examples.
    weight:
        Per-class weights of shape ``(C,)``.
    label_smoothing:
        Smoothing factor in ``[0, 1)``.  Single-label targets are mixed with
        the uniform distribution over ``C`` classes; multi-label entries are
        pulled towards ``0.5``.
    multilabel:
        Treat classes as independent sigmoids instead of a softmax.
    """

    def __init__(
        self,
        gamma: float = 2.0,
        weight: torch.Tensor | None = None,
        label_smoothing: float = 0.0,
        multilabel: bool = False,
    ) -> None:
        super().__init__()
        if gamma < 0:
            raise ValueError(f"gamma must be >= 0, got {gamma}")
        if not 0.0 <= label_smoothing < 1.0:
            raise ValueError(f"label_smoothing must be in [0, 1), got {label_smoothing}")
        self.gamma = gamma
        self.label_smoothing = label_smoothing
        self.multilabel = multilabel
        if weight is not None:
            self.register_buffer("weight", weight)
        else:
            self.weight: torch.Tensor | None = None

    def _smooth(self, targets: torch.Tensor, n_states: int) -> torch.Tensor:
        if self.label_smoothing == 0.0:
            return targets
        return targets * (1.0 - self.label_smoothing) + self.label_smoothing / n_states

    def forward(self, logits: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        """Mean focal loss over the batch.

        Parameters
        ----------
        logits:
            Raw model output of shape ``(B, C)``.
        targets:
            Encoded targets of shape ``(B, C)``, or class indices of shape
            ``(B,)`` in single-label mode.
        """
        n_classes = logits.shape[-1]
        if not self.multilabel and targets.ndim == 1:
            targets = F.one_hot(targets.long(), n_classes)
        targets = targets.to(logits.dtype)

        if self.multilabel:
            targets = self._smooth(targets, 2)
            bce = F.binary_cross_entropy_with_logits(logits, targets, reduction="none")
            probs = torch.sigmoid(logits)
            p_t = probs * targets + (1.0 - probs) * (1.0 - targets)
            loss = (1.0 - p_t) ** self.gamma * bce
            if self.weight is not None:
                loss = loss * self.weight
            return loss.mean()

        targets = self._smooth(targets, n_classes)
        log_probs = F.log_softmax(logits, dim=-1)
        focal = (1.0 - log_probs.exp()) ** self.gamma
        per_class = -targets * focal * log_probs
        if self.weight is not None:
            per_class = per_class * self.weight
        return per_class.sum(dim=-1).mean()


def build_loss_fn(
    name: str,
    weight: torch.Tensor | None = None,
    label_smoothing: float = 0.0,
    focal_gamma: float = 2.0,
) -> nn.Module:
    """Factory for loss functions.

    Parameters
    ----------
    name:
        Single-label: ``"cross_entropy"`` or ``"focal"``.
        Multi-label: ``"bce"`` or ``"focal_multilabel"``.
    weight:
        Per-class weights tensor.
    label_smoothing:
        Label smoothing factor (ignored for bce).
    focal_gamma:
        Gamma for the focal losses (ignored otherwise).

    Returns
    -------
    nn.Module
        The configured loss function.
    """
    if name == "cross_entropy":
        return nn.CrossEntropyLoss(weight=weight, label_smoothing=label_smoothing)
    if name in ("focal", "focal_multilabel"):
        return FocalLoss(
            gamma=focal_gamma,
            weight=weight,
            label_smoothing=label_smoothing,
            multilabel=name == "focal_multilabel",
        )
    if name == "bce":
        return nn.BCEWithLogitsLoss(weight=weight)
    msg = (
        f"Unknown loss function: {name!r}. "
        "Use 'cross_entropy', 'focal', 'bce' or 'focal_multilabel'."
    )
    raise ValueError(msg)
