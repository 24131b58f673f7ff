"""Hydra ConfigStore registration utilities."""

from __future__ import annotations

from typing import Any

from hydra.core.config_store import ConfigStore
from loguru import logger


def register(
    target: Any = None,
    *,
    group: str | None = None,
    name: str | None = None,
    **kwargs: Any,
) -> Any:
    """Decorator to register a class or factory with Hydra's ConfigStore.

    Creates a config node whose ``_target_`` points at the decorated object,
    so ``hydra.utils.instantiate`` can build it.  Decorators may be stacked
    to register the same target under several names with different defaults::

        @register(group="backbone", name="resnet18", depth=18)
        @register(group="backbone", name="resnet50", depth=50)
        class ResNetBackbone(nn.Module): ...

    If *group* is not provided it is inferred from the second-to-last element
    of the module path (``learning_methods.models.backbones`` -> ``models``).

    Arguments:
        target: The class or function to register.
        group: The ConfigStore group. If ``None``, inference is attempted.
        name: The name for the config. Defaults to the target's name.
        **kwargs: Default values for the configuration node.
    """

    def _process(obj: Any) -> Any:
        target_path = f"{obj.__module__}.{obj.__qualname__}"
        config_name = name or obj.__name__
        config_group = group or obj.__module__.split(".")[-2]

        logger.debug(
            f"Registering {obj.__name__} as '{config_name}' in group '{config_group}'"
        )
        node: dict[str, Any] = {"_target_": target_path}
        node.update(kwargs)
        ConfigStore.instance().store(group=config_group, name=config_name, node=node)
        return obj

    if target is None:
        return _process
    return _process(target)
