"""Classification prediction schema."""

from __future__ import annotations

from pydantic import BaseModel


class ClassificationPrediction(BaseModel, frozen=True):
    """A single scored class for one image."""

    class_id: int
    label: str
    confidence: float
