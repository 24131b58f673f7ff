"""Method info callback: reports the learning method and model size at fit start."""

from __future__ import annotations

from pathlib import Path

import lightning as L
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table


class MethodInfoCallback(L.Callback):
    """Print the learning method and parameter counts when fitting starts.

    The table lists the method class, its classes and input size, and the
    total and trainable parameter counts of the module.  When ``output_dir``
    is set, ``labels_mapping.json`` is written there through the datamodule.

    Args:
        output_dir: Directory for ``labels_mapping.json``, or ``None`` to skip it.
    """

    def __init__(self, output_dir: str | None = None) -> None:
        super().__init__()
        self.output_dir = Path(output_dir) if output_dir is not None else None

    def on_fit_start(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        total_params = sum(p.numel() for p in pl_module.parameters())
        trainable_params = sum(
            p.numel() for p in pl_module.parameters() if p.requires_grad
        )
        method = getattr(pl_module, "method", None)
        classes = list(getattr(method, "classes", ()))

        table = Table(
            title="Learning Method",
            header_style="bold magenta",
            box=box.SQUARE,
            show_lines=True,
        )
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Method", type(method).__name__)
        shown = ", ".join(str(c) for c in classes[:10])
        if len(classes) > 10:
            shown += ", ..."
        table.add_row("Classes", f"{len(classes)}: {shown}")
        size = getattr(method, "size", None)
        if size is not None:
            table.add_row("Input Size", f"{size[0]} x {size[1]}")
        table.add_row("Total Parameters", f"{total_params / 1e6:.2f} M")
        table.add_row("Trainable Parameters", f"{trainable_params / 1e6:.2f} M")
        Console().print(table)

        logger.info(
            f"Method: {type(method).__name__} | Classes: {len(classes)} | "
            f"Params: {total_params:,} ({trainable_params:,} trainable)"
        )

        if self.output_dir is None:
            return
        datamodule = getattr(trainer, "datamodule", None)
        if datamodule is not None and hasattr(datamodule, "save_labels_mapping"):
            datamodule.save_labels_mapping(self.output_dir / "labels_mapping.json")
        else:
            logger.info(
                "No datamodule with save_labels_mapping found. "
                "Skipping labels_mapping.json."
            )
