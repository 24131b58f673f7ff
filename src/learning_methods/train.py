"""Training entrypoint for learning_methods.

Usage:
    python -m learning_methods.train data.data_root=/data/pets
    python -m learning_methods.train backbone=resnet50 data.data_root=...
    python -m learning_methods.train method=image_classification_multi ...
    python -m learning_methods.train one_cycle.n_epochs=5 one_cycle.lr_max=3e-3
"""

import sys
from pathlib import Path
from typing import Any

import hydra
import lightning as L
from hydra.core.hydra_config import HydraConfig
from loguru import logger
from omegaconf import DictConfig, OmegaConf

# CRITICAL: import methods and models to trigger @register decorators BEFORE Hydra parses config
import learning_methods.methods  # noqa: F401
import learning_methods.models  # noqa: F401
from learning_methods.config import DataModuleConfig
from learning_methods.data import MethodDataModule, discover_classes
from learning_methods.training import Learner, LearnerModule, fit_one_cycle


@hydra.main(version_base=None, config_path="conf", config_name="train")
def main(cfg: DictConfig) -> None:
    """Run one-cycle training with the given Hydra config."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    L.seed_everything(cfg.get("seed", 42), workers=True)

    data_config = DataModuleConfig(**OmegaConf.to_container(cfg.data, resolve=True))  # type: ignore[arg-type]
    classes = discover_classes(Path(data_config.data_root) / "train")

    method = hydra.utils.instantiate(cfg.method, classes=classes)
    logger.info(f"Learning method:\n{method!r}")
    datamodule = MethodDataModule(method, data_config)

    backbone = hydra.utils.instantiate(cfg.backbone)
    model = method.build_model(backbone)
    module = LearnerModule(model, method, **cfg.get("model", {}))

    loggers: list[Any] = []
    if cfg.get("logging"):
        for v in cfg.logging.values():
            if v is not None and "_target_" in v:
                loggers.append(hydra.utils.instantiate(v))

    # Skip LearningRateMonitor when no logger is configured
    callbacks: list[L.Callback] = []
    if cfg.get("callbacks"):
        for v in cfg.callbacks.values():
            if v is not None and "_target_" in v:
                if not loggers and "LearningRateMonitor" in v["_target_"]:
                    logger.warning("Skipping LearningRateMonitor: no logger configured")
                    continue
                callbacks.append(hydra.utils.instantiate(v))

    output_dir = Path(HydraConfig.get().runtime.output_dir)
    learner = Learner(
        module,
        datamodule,
        callbacks,
        logger=loggers or False,
        default_root_dir=str(output_dir),
        **dict(cfg.trainer),
    )

    fit_one_cycle(learner, **cfg.one_cycle)


if __name__ == "__main__":
    main()
