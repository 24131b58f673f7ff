"""One-cycle learning-rate fit routine."""

from __future__ import annotations

from loguru import logger

from learning_methods.callbacks.scheduler import LearningRate, Scheduler
from learning_methods.config import OneCycleConfig
from learning_methods.training.learner import Learner
from learning_methods.training.schedule import one_cycle
from learning_methods.types import Phase


def fit_one_cycle(
    learner: Learner,
    n_epochs: int,
    lr_max: float = 0.01,
    *,
    div: float = 25.0,
    div_final: float = 1e5,
    pct_start: float = 0.25,
) -> None:
    """Fit ``learner`` for ``n_epochs`` using a one-cycle learning-rate schedule.

    The schedule spans ``n_epochs * steps_per_epoch`` steps (see
    ``one_cycle``) and replaces the learner's training-phase scheduler for
    the duration of the fit.  Whatever scheduler was installed before is
    restored afterwards, also when training raises; the exception is
    propagated unchanged.
    """
    config = OneCycleConfig(
        n_epochs=n_epochs,
        lr_max=lr_max,
        div=div,
        div_final=div_final,
        pct_start=pct_start,
    )
    learner.init_learner([Phase.TRAINING])
    steps = learner.steps_per_epoch(Phase.TRAINING)
    schedule = one_cycle(
        config.n_epochs * steps,
        config.lr_max,
        div=config.div,
        div_final=config.div_final,
        pct_start=config.pct_start,
    )
    one_cycle_scheduler = Scheduler({LearningRate: schedule}, phase=Phase.TRAINING)
    previous = learner.replace_callback(one_cycle_scheduler)
    logger.info(
        f"One-cycle fit: {config.n_epochs} epoch(s) x {steps} step(s), "
        f"lr_max={config.lr_max}"
    )

    try:
        learner.fit(config.n_epochs)
    finally:
        if previous is not None:
            learner.replace_callback(previous)
        else:
            learner.remove_callback(one_cycle_scheduler)
        logger.debug(f"Restored training scheduler: {previous!r}")
