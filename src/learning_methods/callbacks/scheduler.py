"""
Scheduler callback for PyTorch Lightning.

Sets hyperparameters such as the learning rate from step-indexed schedules
before every batch of the phase it is installed for.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import lightning as L
from loguru import logger

from learning_methods.types import Phase


class HyperParameter:
    """A trainer-level value a ``Scheduler`` can read and write."""

    name: str = ""

    @classmethod
    def get(cls, trainer: L.Trainer) -> float:
        raise NotImplementedError

    @classmethod
    def set(cls, trainer: L.Trainer, value: float) -> None:
        raise NotImplementedError


class LearningRate(HyperParameter):
    """Learning rate of every param group of every optimizer."""

    name = "lr"

    @classmethod
    def get(cls, trainer: L.Trainer) -> float:
        return float(trainer.optimizers[0].param_groups[0]["lr"])

    @classmethod
    def set(cls, trainer: L.Trainer, value: float) -> None:
        for optimizer in trainer.optimizers:
            for group in optimizer.param_groups:
                group["lr"] = value


class Scheduler(L.Callback):
    """Drive hyperparameters from schedules, one step per batch.

    Args:
        schedules: Mapping from hyperparameter type to a callable taking the
            step index and returning the value for that step.
        phase: Loop phase whose batches advance the schedules.
    """

    def __init__(
        self,
        schedules: Mapping[type[HyperParameter], Callable[[int], float]],
        phase: Phase = Phase.TRAINING,
    ) -> None:
        super().__init__()
        self.schedules = dict(schedules)
        self.phase = phase
        self.step: int = 0

    @property
    def state_key(self) -> str:
        return self._generate_state_key(phase=self.phase.value)

    def _apply(self, trainer: L.Trainer) -> None:
        for hyperparameter, schedule in self.schedules.items():
            hyperparameter.set(trainer, schedule(self.step))
        self.step += 1

    def on_fit_start(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        names = ", ".join(hp.name for hp in self.schedules)
        logger.debug(f"Scheduling {names} for {self.phase.value} phase from step {self.step}")

    def on_train_batch_start(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        batch: Any,
        batch_idx: int,
    ) -> None:
        if self.phase is Phase.TRAINING:
            self._apply(trainer)

    def on_validation_batch_start(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        batch: Any,
        batch_idx: int,
        dataloader_idx: int = 0,
    ) -> None:
        if self.phase is Phase.VALIDATION and not trainer.sanity_checking:
            self._apply(trainer)

    def state_dict(self) -> dict[str, Any]:
        """Return callback state for checkpointing."""
        return {"step": self.step}

    def load_state_dict(self, state_dict: dict[str, Any]) -> None:
        """Load callback state from checkpoint."""
        self.step = state_dict.get("step", 0)

    def __repr__(self) -> str:
        names = ", ".join(hp.__name__ for hp in self.schedules)
        return f"{type(self).__name__}([{names}], phase={self.phase.value}, step={self.step})"
