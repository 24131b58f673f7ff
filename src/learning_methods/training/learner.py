"""Learner: a LightningModule, its data and the callbacks a fit runs with."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

import lightning as L
import torch
from loguru import logger
from torch import nn
from torch.utils.data import DataLoader
from torchmetrics import Metric
from torchmetrics.classification import MulticlassAccuracy, MultilabelAccuracy

from learning_methods.callbacks.scheduler import HyperParameter, Scheduler
from learning_methods.methods.base import LearningMethod
from learning_methods.methods.image_classification import ImageClassificationMulti
from learning_methods.types import ClassificationBatch, Phase


class LearnerModule(L.LightningModule):
    """LightningModule training ``model`` with the loss of ``method``.

    Accuracy is tracked with torchmetrics: multilabel accuracy for
    ``ImageClassificationMulti``, top-1 multiclass accuracy otherwise.
    The optimizer is AdamW without a built-in scheduler; learning-rate
    schedules are installed as ``Scheduler`` callbacks on the ``Learner``.
    """

    def __init__(
        self,
        model: nn.Module,
        method: LearningMethod,
        learning_rate: float = 1e-3,
        weight_decay: float = 1e-4,
    ) -> None:
        super().__init__()
        self.save_hyperparameters(ignore=["model", "method"])
        self.model = model
        self.method = method
        self.loss_fn = method.loss_function()
        self.multilabel = isinstance(method, ImageClassificationMulti)

        n_classes = len(method.classes)  # type: ignore[attr-defined]
        self.train_acc = self._build_accuracy(n_classes)
        self.val_acc = self._build_accuracy(n_classes)

    def _build_accuracy(self, n_classes: int) -> Metric:
        if self.multilabel:
            return MultilabelAccuracy(num_labels=n_classes)
        return MulticlassAccuracy(num_classes=n_classes, top_k=1, average="micro")

    def _metric_targets(self, targets: torch.Tensor) -> torch.Tensor:
        if self.multilabel:
            return targets.int()
        return targets.argmax(dim=1)

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        return self.model(images)  # type: ignore[no-any-return]

    def training_step(
        self, batch: ClassificationBatch, batch_idx: int
    ) -> torch.Tensor:
        images, targets = batch["images"], batch["targets"]
        logits = self(images)
        loss: torch.Tensor = self.loss_fn(logits, targets)
        self.log(
            "train/loss", loss, on_step=True, on_epoch=True, prog_bar=True
        )
        self.train_acc.update(logits, self._metric_targets(targets))
        return loss

    def on_train_epoch_end(self) -> None:
        self.log("train/acc", self.train_acc.compute())
        self.train_acc.reset()

    def validation_step(
        self, batch: ClassificationBatch, batch_idx: int
    ) -> None:
        images, targets = batch["images"], batch["targets"]
        logits = self(images)
        loss = self.loss_fn(logits, targets)
        self.log(
            "val/loss", loss, on_step=False, on_epoch=True, prog_bar=True
        )
        self.val_acc.update(logits, self._metric_targets(targets))

    def on_validation_epoch_end(self) -> None:
        self.log("val/acc", self.val_acc.compute(), prog_bar=True)
        self.val_acc.reset()

    def configure_optimizers(self) -> torch.optim.Optimizer:
        return torch.optim.AdamW(
            self.parameters(),
            lr=self.hparams["learning_rate"],
            weight_decay=self.hparams["weight_decay"],
        )


class Learner:
    """Bundle of a module, a datamodule and the callbacks used for fitting.

    ``callbacks`` is the learner's scheduling state: at most one
    ``Scheduler`` per phase is installed at a time.  Every ``fit`` runs a
    fresh ``lightning.Trainer`` with a snapshot of the callbacks.

    Args:
        module: LightningModule to train.
        data: LightningDataModule providing train and validation loaders.
        callbacks: Initial callbacks.
        **trainer_kwargs: Extra ``lightning.Trainer`` arguments
            (``max_epochs`` and ``callbacks`` are managed by the learner).
    """

    def __init__(
        self,
        module: L.LightningModule,
        data: L.LightningDataModule,
        callbacks: Iterable[L.Callback] = (),
        **trainer_kwargs: Any,
    ) -> None:
        self.module = module
        self.data = data
        self.callbacks: list[L.Callback] = list(callbacks)
        self.trainer_kwargs = trainer_kwargs
        self.trainer: L.Trainer | None = None
        self._initialized: set[Phase] = set()

    def init_learner(self, phases: Iterable[Phase] = (Phase.TRAINING,)) -> None:
        """Prepare data for ``phases``. Phases already prepared are skipped."""
        pending = [p for p in phases if p not in self._initialized]
        if not pending:
            return
        if not self._initialized:
            self.data.setup("fit")
        self._initialized.update(pending)
        logger.debug(f"Initialized learner phases: {sorted(p.value for p in self._initialized)}")

    def dataloader(self, phase: Phase) -> DataLoader[Any]:
        if phase is Phase.TRAINING:
            return self.data.train_dataloader()  # type: ignore[no-any-return]
        return self.data.val_dataloader()  # type: ignore[no-any-return]

    def steps_per_epoch(self, phase: Phase = Phase.TRAINING) -> int:
        """Number of batches one epoch of ``phase`` iterates."""
        return len(self.dataloader(phase))

    # ------------------------------------------------------------------
    # Callback management
    # ------------------------------------------------------------------

    def scheduler(self, phase: Phase = Phase.TRAINING) -> Scheduler | None:
        """The ``Scheduler`` currently installed for ``phase``, if any."""
        for cb in self.callbacks:
            if isinstance(cb, Scheduler) and cb.phase is phase:
                return cb
        return None

    def set_schedules(
        self,
        phase: Phase,
        schedules: Mapping[type[HyperParameter], Callable[[int], float]],
    ) -> Scheduler | None:
        """Install a new ``Scheduler`` for ``phase``; return the one it replaced."""
        return self.replace_callback(Scheduler(schedules, phase=phase))

    def _index_of_same_kind(self, callback: L.Callback) -> int | None:
        for i, cb in enumerate(self.callbacks):
            if isinstance(callback, Scheduler):
                if isinstance(cb, Scheduler) and cb.phase is callback.phase:
                    return i
            elif type(cb) is type(callback):
                return i
        return None

    def replace_callback(self, callback: L.Callback) -> L.Callback | None:
        """Swap in ``callback`` for the installed callback of the same kind.

        Schedulers replace the installed scheduler of the same phase, including
        subclasses; other callbacks replace one of the same type.  Matches are
        swapped in place; otherwise ``callback`` is appended.  Returns the replaced
        callback or ``None``.
        """
        idx = self._index_of_same_kind(callback)
        if idx is None:
            self.callbacks.append(callback)
            return None
        previous = self.callbacks[idx]
        self.callbacks[idx] = callback
        return previous

    def remove_callback(self, callback: L.Callback) -> None:
        """Remove ``callback``; ``ValueError`` if it is not installed."""
        for i, cb in enumerate(self.callbacks):
            if cb is callback:
                del self.callbacks[i]
                return
        raise ValueError(f"{callback!r} is not installed on this learner")

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------

    def fit(self, n_epochs: int) -> None:
        """Train for ``n_epochs`` epochs with the current callbacks."""
        self.init_learner((Phase.TRAINING, Phase.VALIDATION))
        self.trainer = L.Trainer(
            max_epochs=n_epochs,
            callbacks=list(self.callbacks),
            **self.trainer_kwargs,
        )
        logger.info(f"Fitting for {n_epochs} epoch(s)")
        self.trainer.fit(self.module, datamodule=self.data)
