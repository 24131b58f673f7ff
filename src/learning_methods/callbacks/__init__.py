"""Training callbacks for learning_methods."""

from learning_methods.callbacks.history import HyperParameterHistory
from learning_methods.callbacks.method_info import MethodInfoCallback
from learning_methods.callbacks.scheduler import HyperParameter, LearningRate, Scheduler

__all__ = [
    "HyperParameter",
    "HyperParameterHistory",
    "LearningRate",
    "MethodInfoCallback",
    "Scheduler",
]
