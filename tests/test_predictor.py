"""Tests for Predictor."""

import pytest
import torch
from PIL import Image

from learning_methods.inference import Predictor
from learning_methods.methods import ImageClassification, ImageClassificationMulti
from learning_methods.schemas import ClassificationPrediction

from conftest import CLASSES, make_backbone

LOGITS = torch.tensor([0.1, 2.0, 1.0])


def _fixed_model(xs: torch.Tensor) -> torch.Tensor:
    return LOGITS.repeat(xs.shape[0], 1)


@pytest.fixture()
def image() -> Image.Image:
    return Image.new("RGB", (40, 24), color=(120, 30, 200))


class TestPredictor:
    def test_predict_decodes_argmax(
        self, method: ImageClassification, image: Image.Image
    ) -> None:
        predictor = Predictor(method, _fixed_model)
        assert predictor.predict(image) == "dog"

    def test_predict_batch(self, method: ImageClassification, image: Image.Image) -> None:
        predictor = Predictor(method, _fixed_model)
        assert predictor.predict_batch([image, image]) == ["dog", "dog"]

    def test_predict_batch_empty(self, method: ImageClassification) -> None:
        assert Predictor(method, _fixed_model).predict_batch([]) == []

    def test_top_k_descending(self, method: ImageClassification, image: Image.Image) -> None:
        top = Predictor(method, _fixed_model).top_k(image, k=2)
        assert [p.label for p in top] == ["dog", "bird"]
        assert [p.class_id for p in top] == [1, 2]
        assert top[0].confidence > top[1].confidence
        assert all(isinstance(p, ClassificationPrediction) for p in top)

    def test_top_k_clamped_to_classes(
        self, method: ImageClassification, image: Image.Image
    ) -> None:
        top = Predictor(method, _fixed_model).top_k(image, k=10)
        assert len(top) == len(CLASSES)
        assert sum(p.confidence for p in top) == pytest.approx(1.0)

    def test_module_switched_to_eval(
        self, method: ImageClassification, image: Image.Image
    ) -> None:
        model = method.build_model(make_backbone())
        model.train()
        predictor = Predictor(method, model)
        assert not model.training
        assert predictor.predict(image) in CLASSES

    def test_multilabel_prediction(self, image: Image.Image) -> None:
        method = ImageClassificationMulti(CLASSES, (16, 16))
        predictor = Predictor(method, _fixed_model)
        # sigmoid(0.1) > 0.5 as well
        assert predictor.predict(image) == ["cat", "dog", "bird"]
