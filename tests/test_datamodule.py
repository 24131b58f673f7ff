"""Tests for MethodDataModule and the raw sample sources."""

import json
from pathlib import Path

import pytest
import torch
from PIL import Image
from torch.utils.data import RandomSampler, SequentialSampler

from learning_methods.config import DataModuleConfig
from learning_methods.data import (
    EncodedDataset,
    ImageFolderSamples,
    MethodDataModule,
    discover_classes,
)
from learning_methods.methods import ImageClassification
from learning_methods.types import Context

from conftest import CLASSES


def _in_memory(method: ImageClassification, n_train: int = 6, n_valid: int = 3) -> MethodDataModule:
    return MethodDataModule(
        method,
        train_samples=[method.mock_sample() for _ in range(n_train)],
        valid_samples=[method.mock_sample() for _ in range(n_valid)],
        batch_size=4,
        num_workers=0,
        pin_memory=False,
    )


# ---------------------------------------------------------------------------
# discover_classes / ImageFolderSamples
# ---------------------------------------------------------------------------


class TestImageFolderSamples:
    def test_discover_classes_sorted(self, tmp_image_folder: Path) -> None:
        assert discover_classes(tmp_image_folder / "train") == sorted(CLASSES)

    def test_discover_classes_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            discover_classes(tmp_path / "nope")

    def test_discover_classes_empty_root(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="No class directories"):
            discover_classes(tmp_path)

    def test_samples_are_rgb_images_with_class(self, tmp_image_folder: Path) -> None:
        samples = ImageFolderSamples(tmp_image_folder / "train")
        assert len(samples) == 9
        image, label = samples[0]
        assert isinstance(image, Image.Image)
        assert image.mode == "RGB"
        assert label in CLASSES

    def test_unknown_class_directories_skipped(self, tmp_image_folder: Path) -> None:
        samples = ImageFolderSamples(tmp_image_folder / "train", classes=["cat", "dog"])
        assert len(samples) == 6
        assert {label for _, label in samples.samples} == {"cat", "dog"}

    def test_non_image_files_ignored(self, tmp_image_folder: Path) -> None:
        (tmp_image_folder / "train" / "cat" / "notes.txt").write_text("hello")
        assert len(ImageFolderSamples(tmp_image_folder / "train")) == 9


class TestEncodedDataset:
    def test_encodes_with_context(self, method: ImageClassification) -> None:
        samples = [method.mock_sample() for _ in range(3)]
        dataset = EncodedDataset(samples, method, Context.VALIDATION)
        assert len(dataset) == 3
        x, y = dataset[1]
        assert x.shape == (3, 16, 16)
        assert torch.equal(y, method.encode_target(Context.VALIDATION, samples[1][1]))


# ---------------------------------------------------------------------------
# MethodDataModule
# ---------------------------------------------------------------------------


class TestMethodDataModule:
    def test_dataloaders_require_setup(self, method: ImageClassification) -> None:
        dm = _in_memory(method)
        with pytest.raises(RuntimeError, match="setup"):
            dm.train_dataloader()
        with pytest.raises(RuntimeError, match="setup"):
            dm.val_dataloader()

    def test_setup_requires_samples_or_root(self, method: ImageClassification) -> None:
        dm = MethodDataModule(method, num_workers=0)
        with pytest.raises(RuntimeError, match="data_root is empty"):
            dm.setup("fit")

    def test_setup_uses_contexts(self, method: ImageClassification) -> None:
        dm = _in_memory(method)
        dm.setup("fit")
        assert dm._train_dataset is not None
        assert dm._val_dataset is not None
        assert dm._train_dataset.context is Context.TRAINING
        assert dm._val_dataset.context is Context.VALIDATION

    def test_other_stages_are_noops(self, method: ImageClassification) -> None:
        dm = _in_memory(method)
        dm.setup("predict")
        assert dm._train_dataset is None

    def test_batch_layout(self, method: ImageClassification) -> None:
        dm = _in_memory(method)
        dm.setup("fit")
        batch = next(iter(dm.val_dataloader()))
        assert batch["images"].shape == (3, 3, 16, 16)
        assert batch["targets"].shape == (3, len(CLASSES))
        assert torch.all(batch["targets"].sum(dim=1) == 1)

    def test_train_is_shuffled_val_is_not(self, method: ImageClassification) -> None:
        dm = _in_memory(method)
        dm.setup("fit")
        assert isinstance(dm.train_dataloader().sampler, RandomSampler)
        assert isinstance(dm.val_dataloader().sampler, SequentialSampler)

    def test_train_loader_drops_incomplete_batch(self, method: ImageClassification) -> None:
        dm = _in_memory(method, n_train=9)
        dm.setup("fit")
        loader = dm.train_dataloader()
        assert loader.drop_last
        assert len(loader) == 2
        assert all(batch["images"].shape[0] == 4 for batch in loader)

    def test_drop_last_can_be_disabled(self, method: ImageClassification) -> None:
        dm = MethodDataModule(
            method,
            train_samples=[method.mock_sample() for _ in range(9)],
            valid_samples=[method.mock_sample() for _ in range(3)],
            batch_size=4,
            num_workers=0,
            drop_last=False,
        )
        dm.setup("fit")
        assert len(dm.train_dataloader()) == 3
        assert not dm.val_dataloader().drop_last

    def test_persistent_workers_disabled_without_workers(
        self, method: ImageClassification
    ) -> None:
        dm = MethodDataModule(method, DataModuleConfig(num_workers=0))
        assert dm._persistent_workers is False

    def test_image_folder_mode(
        self, method: ImageClassification, tmp_image_folder: Path
    ) -> None:
        cfg = DataModuleConfig(
            data_root=str(tmp_image_folder), batch_size=4, num_workers=0, pin_memory=False
        )
        dm = MethodDataModule(method, cfg)
        dm.setup("fit")
        assert len(dm._train_dataset) == 9  # type: ignore[arg-type]
        assert len(dm._val_dataset) == 3  # type: ignore[arg-type]
        assert len(dm.train_dataloader()) == 2  # 9 samples, incomplete batch dropped
        batch = next(iter(dm.train_dataloader()))
        assert batch["images"].shape[1:] == (3, 16, 16)
        assert batch["images"].dtype == torch.float32

    def test_save_labels_mapping(self, method: ImageClassification, tmp_path: Path) -> None:
        dm = _in_memory(method)
        path = tmp_path / "out" / "labels_mapping.json"
        dm.save_labels_mapping(path)
        mapping = json.loads(path.read_text())
        assert mapping["num_classes"] == 3
        assert mapping["class_to_idx"] == {"cat": 0, "dog": 1, "bird": 2}
        assert mapping["idx_to_class"]["2"] == "bird"
        assert len(mapping["normalization"]["mean"]) == 3
