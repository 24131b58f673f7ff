"""Raw sample sources and the dataset that encodes them with a learning method."""

from collections.abc import Hashable, Sequence
from pathlib import Path
from typing import Any

import torch
from loguru import logger
from PIL import Image
from torch.utils.data import Dataset

from learning_methods.methods.base import LearningMethod
from learning_methods.types import Context

IMAGE_EXTENSIONS: tuple[str, ...] = (".bmp", ".jpeg", ".jpg", ".png")


def discover_classes(root: Path) -> list[str]:
    """Sorted names of the class subdirectories of ``root``.

    Raises:
        FileNotFoundError: If ``root`` is not a directory.
        ValueError: If ``root`` has no subdirectories.
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Class root {root} is not a directory")
    classes = sorted(p.name for p in root.iterdir() if p.is_dir())
    if not classes:
        raise ValueError(f"No class directories found under {root}")
    logger.info(f"Discovered {len(classes)} classes under {root}")
    return classes


class ImageFolderSamples(Dataset[tuple[Image.Image, str]]):
    """Raw ``(image, class)`` samples from a ``root/<class>/<image>`` tree.

    Images are searched recursively inside each class directory and loaded
    lazily as RGB PIL images.

    Args:
        root: Split directory containing one subdirectory per class.
        classes: Known classes.  Directories for other classes are skipped
            with a warning.  Defaults to every subdirectory of ``root``.
    """

    def __init__(self, root: Path, classes: Sequence[Hashable] | None = None) -> None:
        self.root = Path(root)
        known = set(classes) if classes is not None else set(discover_classes(self.root))
        self.samples: list[tuple[Path, str]] = []

        skipped: list[str] = []
        for class_dir in sorted(p for p in self.root.iterdir() if p.is_dir()):
            if class_dir.name not in known:
                skipped.append(class_dir.name)
                continue
            for path in sorted(class_dir.rglob("*")):
                if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS:
                    self.samples.append((path, class_dir.name))
        if skipped:
            logger.warning(f"Skipped unknown class directories under {self.root}: {skipped}")

        logger.debug(f"ImageFolderSamples: {len(self.samples)} images under {self.root}")

    def __len__(self) -> int:
        return len(self.samples)

    def __getitem__(self, idx: int) -> tuple[Image.Image, str]:
        path, label = self.samples[idx]
        return Image.open(path).convert("RGB"), label


class EncodedDataset(Dataset[tuple[torch.Tensor, torch.Tensor]]):
    """Apply ``method.encode`` under ``context`` to every raw sample.

    Args:
        samples: Indexable collection of raw ``(input, target)`` pairs.
        method: Learning method used for encoding.
        context: ``Context.TRAINING`` enables augmentation.
    """

    def __init__(
        self,
        samples: Sequence[tuple[Any, Any]] | Dataset[Any],
        method: LearningMethod,
        context: Context,
    ) -> None:
        self.samples = samples
        self.method = method
        self.context = context

    def __len__(self) -> int:
        return len(self.samples)  # type: ignore[arg-type]

    def __getitem__(self, idx: int) -> tuple[torch.Tensor, torch.Tensor]:
        return self.method.encode(self.context, self.samples[idx])  # type: ignore[no-any-return]
