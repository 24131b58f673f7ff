"""Hyperparameter history callback recording values per training step."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import lightning as L
import matplotlib
import matplotlib.pyplot as plt
from loguru import logger

from learning_methods.callbacks.scheduler import HyperParameter, LearningRate


class HyperParameterHistory(L.Callback):
    """Record hyperparameter values after every training batch.

    When ``output_dir`` is set, one ``<name>_history.png`` per recorded
    hyperparameter is written at the end of training.

    Args:
        hyperparameters: Hyperparameter types to record.
        output_dir: Root directory for saved plots, or ``None`` to skip plotting.
    """

    def __init__(
        self,
        hyperparameters: tuple[type[HyperParameter], ...] = (LearningRate,),
        output_dir: str | None = None,
    ) -> None:
        super().__init__()
        self.hyperparameters = hyperparameters
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.history: dict[str, list[float]] = {
            hp.name: [] for hp in hyperparameters
        }

    def on_train_batch_end(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        outputs: Any,
        batch: Any,
        batch_idx: int,
    ) -> None:
        for hp in self.hyperparameters:
            self.history[hp.name].append(hp.get(trainer))

    def on_train_end(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        if self.output_dir is None:
            return
        try:
            self._plot_history(self.output_dir)
        except Exception as e:
            logger.error(f"Failed to plot hyperparameter history: {e}")

    def _plot_history(self, output_dir: Path) -> None:
        matplotlib.use("Agg")
        output_dir.mkdir(parents=True, exist_ok=True)

        for name, values in self.history.items():
            if not values:
                continue
            fig, ax = plt.subplots(figsize=(10, 6))
            ax.plot(range(len(values)), values)
            ax.set_title(f"{name} schedule")
            ax.set_xlabel("Step")
            ax.set_ylabel(name)
            ax.grid(True, linestyle="--", alpha=0.7)
            fig.tight_layout()
            fig.savefig(output_dir / f"{name}_history.png", dpi=150)
            plt.close(fig)

        logger.info(f"Hyperparameter history plots updated in {output_dir}")
