"""Training loop glue: learners, schedules and the one-cycle fit routine."""

from learning_methods.training.learner import Learner, LearnerModule
from learning_methods.training.onecycle import fit_one_cycle
from learning_methods.training.schedule import (
    Schedule,
    ScheduleSegment,
    anneal_cos,
    anneal_linear,
    one_cycle,
)

__all__ = [
    "Learner",
    "LearnerModule",
    "Schedule",
    "ScheduleSegment",
    "anneal_cos",
    "anneal_linear",
    "fit_one_cycle",
    "one_cycle",
]
