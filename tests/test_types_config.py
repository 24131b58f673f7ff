"""Unit tests for learning_methods.types and learning_methods.config."""

import pytest
import torch
from pydantic import ValidationError

from learning_methods.config import DataModuleConfig, OneCycleConfig
from learning_methods.types import ClassificationBatch, Context, Phase


class TestDataModuleConfig:
    def test_defaults(self) -> None:
        cfg = DataModuleConfig(data_root="/data/test")
        assert cfg.batch_size == 32
        assert cfg.num_workers == 4
        assert cfg.pin_memory is True
        assert cfg.persistent_workers is True
        assert cfg.drop_last is True

    def test_frozen_raises_on_mutation(self) -> None:
        cfg = DataModuleConfig()
        with pytest.raises(ValidationError):
            cfg.batch_size = 64  # type: ignore[misc]

    def test_persistent_workers_auto_corrected_when_num_workers_zero(self) -> None:
        cfg = DataModuleConfig(num_workers=0, persistent_workers=True)
        assert cfg.persistent_workers is False

    def test_rejects_non_positive_batch_size(self) -> None:
        with pytest.raises(ValidationError):
            DataModuleConfig(batch_size=0)


class TestOneCycleConfig:
    def test_defaults(self) -> None:
        cfg = OneCycleConfig(n_epochs=3)
        assert cfg.lr_max == pytest.approx(0.01)
        assert cfg.div == pytest.approx(25.0)
        assert cfg.div_final == pytest.approx(1e5)
        assert cfg.pct_start == pytest.approx(0.25)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"n_epochs": 0},
            {"n_epochs": 1, "lr_max": 0.0},
            {"n_epochs": 1, "div": -1.0},
            {"n_epochs": 1, "pct_start": 1.5},
        ],
    )
    def test_invalid_values_raise(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValidationError):
            OneCycleConfig(**kwargs)  # type: ignore[arg-type]


class TestTypes:
    def test_contexts_are_distinct(self) -> None:
        assert len({Context.TRAINING, Context.VALIDATION, Context.INFERENCE}) == 3

    def test_phases(self) -> None:
        assert Phase.TRAINING.value == "training"

    def test_batch_typed_dict_keys(self) -> None:
        batch: ClassificationBatch = {
            "images": torch.zeros(2, 3, 8, 8),
            "targets": torch.zeros(2, 4),
        }
        assert set(batch) == {"images", "targets"}
