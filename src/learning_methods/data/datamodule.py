"""LightningDataModule feeding learning-method-encoded samples to a Trainer."""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import lightning as L
import torch
from loguru import logger
from torch.utils.data import DataLoader, Dataset

from learning_methods.config import DataModuleConfig
from learning_methods.data.dataset import EncodedDataset, ImageFolderSamples
from learning_methods.methods.base import LearningMethod
from learning_methods.types import ClassificationBatch, Context


class MethodDataModule(L.LightningDataModule):
    """DataModule encoding raw samples with a learning method.

    Raw samples come either from memory (``train_samples`` /
    ``valid_samples``) or from ``data_root/{train,valid}/<class>/`` image
    folders.  The training split is encoded in ``Context.TRAINING``
    (augmentations active, shuffled); the validation split in
    ``Context.VALIDATION`` (deterministic).

    Args:
        method: Learning method used to encode samples.
        config: DataModuleConfig frozen model with all DataLoader parameters.
            If provided, flat kwargs are ignored.
        train_samples: In-memory raw training samples.
        valid_samples: In-memory raw validation samples.
        data_root: Path to dataset root (used when no samples are given).
        batch_size: Batch size for DataLoaders (default: 32).
        num_workers: Number of DataLoader workers (default: 4).
        pin_memory: Whether to pin memory (default: True).
        persistent_workers: Keep workers alive between epochs (default: True).
        drop_last: Drop the incomplete last training batch (default: True).
            BatchNorm heads cannot train on a single-sample batch.
        **kwargs: Absorbs extra Hydra-injected keys (_target_, _recursive_, etc.).
    """

    def __init__(
        self,
        method: LearningMethod,
        config: DataModuleConfig | None = None,
        *,
        train_samples: Sequence[tuple[Any, Any]] | None = None,
        valid_samples: Sequence[tuple[Any, Any]] | None = None,
        data_root: str = "",
        batch_size: int = 32,
        num_workers: int = 4,
        pin_memory: bool = True,
        persistent_workers: bool = True,
        drop_last: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__()
        if config is not None:
            self._config = config
        else:
            self._config = DataModuleConfig(
                data_root=data_root,
                batch_size=batch_size,
                num_workers=num_workers,
                pin_memory=pin_memory,
                persistent_workers=persistent_workers,
                drop_last=drop_last,
            )
        self.method = method
        self._train_samples = train_samples
        self._valid_samples = valid_samples

        # MPS guard: multiprocessing DataLoader workers crash on Apple Silicon.
        num_workers = self._config.num_workers
        if torch.backends.mps.is_available() and num_workers > 0:
            logger.warning(
                "MPS detected: setting num_workers=0 to avoid multiprocessing "
                "crash. Use linux-64 / CUDA for multi-worker DataLoading."
            )
            num_workers = 0

        self._num_workers = num_workers
        self._pin_memory = self._config.pin_memory
        # persistent_workers is meaningless (and silently ignored) with 0 workers
        self._persistent_workers = self._config.persistent_workers and num_workers > 0
        self._batch_size = self._config.batch_size

        self._train_dataset: EncodedDataset | None = None
        self._val_dataset: EncodedDataset | None = None

    def _raw_split(
        self, samples: Sequence[tuple[Any, Any]] | None, split: str
    ) -> Sequence[tuple[Any, Any]] | Dataset[Any]:
        if samples is not None:
            return samples
        if not self._config.data_root:
            raise RuntimeError(
                f"No {split} samples given and data_root is empty"
            )
        return ImageFolderSamples(
            Path(self._config.data_root) / split,
            classes=getattr(self.method, "classes", None),
        )

    # ------------------------------------------------------------------
    # LightningDataModule lifecycle
    # ------------------------------------------------------------------

    def setup(self, stage: str | None = None) -> None:
        """Build the encoded train and validation datasets.

        Args:
            stage: "fit" or None builds both splits; other stages are no-ops.
        """
        if stage not in ("fit", None):
            return
        self._train_dataset = EncodedDataset(
            self._raw_split(self._train_samples, "train"),
            self.method,
            Context.TRAINING,
        )
        self._val_dataset = EncodedDataset(
            self._raw_split(self._valid_samples, "valid"),
            self.method,
            Context.VALIDATION,
        )
        logger.info(
            f"Setup fit: train={len(self._train_dataset)}, "
            f"val={len(self._val_dataset)} samples"
        )

    # ------------------------------------------------------------------
    # Collate: converts (x, y) tuples to ClassificationBatch dict
    # ------------------------------------------------------------------

    @staticmethod
    def _collate_fn(
        batch: list[tuple[torch.Tensor, torch.Tensor]],
    ) -> ClassificationBatch:
        """Stack encoded ``(x, y)`` pairs into a ClassificationBatch dict."""
        images = torch.stack([item[0] for item in batch])
        targets = torch.stack([item[1] for item in batch])
        return {"images": images, "targets": targets}

    # ------------------------------------------------------------------
    # DataLoaders
    # ------------------------------------------------------------------

    def train_dataloader(self) -> DataLoader[tuple[torch.Tensor, torch.Tensor]]:
        """Return the shuffled training DataLoader."""
        if self._train_dataset is None:
            raise RuntimeError("Call setup('fit') first")
        return DataLoader(
            self._train_dataset,
            batch_size=self._batch_size,
            shuffle=True,
            num_workers=self._num_workers,
            pin_memory=self._pin_memory,
            persistent_workers=self._persistent_workers,
            drop_last=self._config.drop_last,
            collate_fn=self._collate_fn,
        )

    def val_dataloader(self) -> DataLoader[tuple[torch.Tensor, torch.Tensor]]:
        """Return the deterministic validation DataLoader."""
        if self._val_dataset is None:
            raise RuntimeError("Call setup('fit') first")
        return DataLoader(
            self._val_dataset,
            batch_size=self._batch_size,
            shuffle=False,
            num_workers=self._num_workers,
            pin_memory=self._pin_memory,
            persistent_workers=self._persistent_workers,
            collate_fn=self._collate_fn,
        )

    # ------------------------------------------------------------------
    # labels_mapping.json serialization
    # ------------------------------------------------------------------

    def save_labels_mapping(self, save_path: Path) -> None:
        """Persist the method's classes and normalization as labels_mapping.json.

        Written next to trained checkpoints so inference code can apply the
        same preprocessing and map logits back to class labels.

        Args:
            save_path: Destination path for labels_mapping.json.
        """
        classes = [str(c) for c in getattr(self.method, "classes", ())]
        mapping: dict[str, Any] = {
            "num_classes": len(classes),
            "class_to_idx": {c: i for i, c in enumerate(classes)},
            "idx_to_class": {str(i): c for i, c in enumerate(classes)},
        }
        preprocessing = getattr(self.method, "image_preprocessing", None)
        if preprocessing is not None:
            mapping["normalization"] = {
                "mean": list(preprocessing.means),
                "std": list(preprocessing.stds),
            }
        save_path.parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, "w") as f:
            json.dump(mapping, f, indent=2)
        logger.info(f"Saved labels_mapping.json to {save_path}")
