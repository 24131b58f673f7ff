"""Shared pytest fixtures for learning_methods tests."""

from pathlib import Path

import lightning as L
import numpy as np
import pytest
from PIL import Image
from torch import nn

from learning_methods.data import MethodDataModule
from learning_methods.methods import ImageClassification
from learning_methods.training import Learner, LearnerModule

CLASSES = ["cat", "dog", "bird"]

# Trainer settings for fast, quiet CPU runs.
TRAINER_KWARGS = {
    "accelerator": "cpu",
    "devices": 1,
    "logger": False,
    "enable_checkpointing": False,
    "enable_progress_bar": False,
    "enable_model_summary": False,
    "num_sanity_val_steps": 0,
}


def make_backbone() -> nn.Module:
    """Tiny conv backbone: (B, 3, H, W) -> (B, 16, H / 4, W / 4)."""
    return nn.Sequential(
        nn.Conv2d(3, 8, kernel_size=3, stride=2, padding=1),
        nn.ReLU(),
        nn.Conv2d(8, 16, kernel_size=3, stride=2, padding=1),
    )


@pytest.fixture()
def method() -> ImageClassification:
    """3-class method with small 16x16 inputs."""
    return ImageClassification(CLASSES, (16, 16))


@pytest.fixture()
def learner(method: ImageClassification) -> Learner:
    """Learner over 8 train / 4 valid mock samples, batch size 4 (2 steps per epoch)."""
    L.seed_everything(0)
    train = [method.mock_sample() for _ in range(8)]
    valid = [method.mock_sample() for _ in range(4)]
    data = MethodDataModule(
        method,
        train_samples=train,
        valid_samples=valid,
        batch_size=4,
        num_workers=0,
        pin_memory=False,
    )
    module = LearnerModule(method.build_model(make_backbone()), method)
    return Learner(module, data, **TRAINER_KWARGS)


@pytest.fixture()
def tmp_image_folder(tmp_path: Path) -> Path:
    """Image-folder dataset: {train,valid}/{cat,dog,bird}/img_XX.png.

    3 images per class in train, 1 in valid; image sizes vary.
    """
    rng = np.random.default_rng(0)
    for split, n_images in (("train", 3), ("valid", 1)):
        for cls in CLASSES:
            class_dir = tmp_path / split / cls
            class_dir.mkdir(parents=True)
            for i in range(n_images):
                h, w = int(rng.integers(12, 40)), int(rng.integers(12, 40))
                pixels = rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)
                Image.fromarray(pixels).save(class_dir / f"img_{i:02d}.png")
    return tmp_path
