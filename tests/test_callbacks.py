"""Tests for the training callbacks."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import torch
from torch import nn

from learning_methods.callbacks import (
    HyperParameterHistory,
    LearningRate,
    MethodInfoCallback,
    Scheduler,
)
from learning_methods.types import Phase


def _make_mock_trainer(n_groups: int = 2, sanity_checking: bool = False) -> MagicMock:
    """Mock Trainer backed by a real optimizer with ``n_groups`` param groups."""
    params = [{"params": [nn.Parameter(torch.zeros(1))]} for _ in range(n_groups)]
    trainer = MagicMock()
    trainer.optimizers = [torch.optim.SGD(params, lr=0.5)]
    trainer.sanity_checking = sanity_checking
    return trainer


class TestLearningRate:
    def test_set_updates_every_group(self) -> None:
        trainer = _make_mock_trainer(n_groups=3)
        LearningRate.set(trainer, 0.123)
        assert [g["lr"] for g in trainer.optimizers[0].param_groups] == [0.123] * 3

    def test_get_reads_first_group(self) -> None:
        trainer = _make_mock_trainer()
        assert LearningRate.get(trainer) == 0.5


class TestScheduler:
    def test_initial_state(self) -> None:
        sched = Scheduler({LearningRate: lambda step: 1.0})
        assert sched.step == 0
        assert sched.phase is Phase.TRAINING

    def test_sets_value_per_training_batch(self) -> None:
        trainer = _make_mock_trainer()
        sched = Scheduler({LearningRate: lambda step: 0.1 * (step + 1)})
        seen = []
        for batch_idx in range(3):
            sched.on_train_batch_start(trainer, MagicMock(), None, batch_idx)
            seen.append(LearningRate.get(trainer))
        assert seen == pytest.approx([0.1, 0.2, 0.3])
        assert sched.step == 3

    def test_training_scheduler_ignores_validation(self) -> None:
        trainer = _make_mock_trainer()
        sched = Scheduler({LearningRate: lambda step: 9.0})
        sched.on_validation_batch_start(trainer, MagicMock(), None, 0)
        assert LearningRate.get(trainer) == 0.5
        assert sched.step == 0

    def test_validation_scheduler(self) -> None:
        trainer = _make_mock_trainer()
        sched = Scheduler({LearningRate: lambda step: 9.0}, phase=Phase.VALIDATION)
        sched.on_train_batch_start(trainer, MagicMock(), None, 0)
        assert sched.step == 0
        sched.on_validation_batch_start(trainer, MagicMock(), None, 0)
        assert LearningRate.get(trainer) == 9.0

    def test_validation_scheduler_skips_sanity_check(self) -> None:
        trainer = _make_mock_trainer(sanity_checking=True)
        sched = Scheduler({LearningRate: lambda step: 9.0}, phase=Phase.VALIDATION)
        sched.on_validation_batch_start(trainer, MagicMock(), None, 0)
        assert sched.step == 0

    def test_state_dict_round_trip(self) -> None:
        sched = Scheduler({LearningRate: lambda step: 1.0})
        sched.step = 17
        restored = Scheduler({LearningRate: lambda step: 1.0})
        restored.load_state_dict(sched.state_dict())
        assert restored.step == 17

    def test_state_key_depends_on_phase(self) -> None:
        train = Scheduler({LearningRate: lambda step: 1.0})
        val = Scheduler({LearningRate: lambda step: 1.0}, phase=Phase.VALIDATION)
        assert train.state_key != val.state_key


class TestHyperParameterHistory:
    def test_records_after_each_batch(self) -> None:
        trainer = _make_mock_trainer()
        history = HyperParameterHistory()
        for i, lr in enumerate([0.1, 0.2]):
            LearningRate.set(trainer, lr)
            history.on_train_batch_end(trainer, MagicMock(), None, None, i)
        assert history.history == {"lr": [0.1, 0.2]}

    def test_no_plot_without_output_dir(self, tmp_path: Path) -> None:
        history = HyperParameterHistory()
        history.on_train_end(MagicMock(), MagicMock())
        assert not any(tmp_path.iterdir())

    def test_saves_plot(self, tmp_path: Path) -> None:
        trainer = _make_mock_trainer()
        history = HyperParameterHistory(output_dir=str(tmp_path))
        history.on_train_batch_end(trainer, MagicMock(), None, None, 0)
        history.on_train_end(trainer, MagicMock())
        assert (tmp_path / "lr_history.png").is_file()


class TestMethodInfoCallback:
    def test_writes_labels_mapping(self, tmp_path: Path) -> None:
        trainer = MagicMock()
        pl_module = MagicMock()
        pl_module.parameters.return_value = [nn.Parameter(torch.zeros(4))]
        pl_module.method.classes = ("a", "b")
        pl_module.method.size = (16, 16)
        MethodInfoCallback(output_dir=str(tmp_path)).on_fit_start(trainer, pl_module)
        trainer.datamodule.save_labels_mapping.assert_called_once_with(
            tmp_path / "labels_mapping.json"
        )

    def test_skips_mapping_without_output_dir(self) -> None:
        trainer = MagicMock()
        pl_module = MagicMock()
        pl_module.parameters.return_value = []
        MethodInfoCallback().on_fit_start(trainer, pl_module)
        trainer.datamodule.save_labels_mapping.assert_not_called()
