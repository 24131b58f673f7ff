"""Pydantic frozen configuration models for learning_methods."""

from pydantic import BaseModel, Field, model_validator


class DataModuleConfig(BaseModel, frozen=True):
    """Configuration for MethodDataModule.

    All fields are validated at construction time. Frozen: no mutation after creation.
    """

    data_root: str = ""
    batch_size: int = Field(default=32, gt=0)
    num_workers: int = Field(default=4, ge=0)
    pin_memory: bool = True
    persistent_workers: bool = True
    drop_last: bool = True

    @model_validator(mode="after")
    def _persistent_workers_requires_workers(self) -> "DataModuleConfig":
        """persistent_workers=True with num_workers=0 silently does nothing."""
        if self.persistent_workers and self.num_workers == 0:
            # Use object.__setattr__ because model is frozen
            object.__setattr__(self, "persistent_workers", False)
        return self


class OneCycleConfig(BaseModel, frozen=True):
    """Hyperparameters of a one-cycle fit.

    ``lr_max / div`` is the starting learning rate, ``lr_max / div_final``
    the final one.  ``pct_start`` is the fraction of steps spent warming up.
    """

    n_epochs: int = Field(gt=0)
    lr_max: float = Field(default=0.01, gt=0.0)
    div: float = Field(default=25.0, gt=0.0)
    div_final: float = Field(default=1e5, gt=0.0)
    pct_start: float = Field(default=0.25, ge=0.0, le=1.0)
