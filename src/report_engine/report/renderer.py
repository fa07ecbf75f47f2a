"""
Report artifact rendering.

The pipeline only calls Renderer.render and stores the returned locator;
FileRenderer is the local implementation writing JSON and CSV files.
"""

import csv
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from utils.tracing import trace_function

from ..errors import RenderError
from ..models import OutputFormat

logger = logging.getLogger(__name__)


class Renderer(ABC):
    """Turns run data into an artifact and returns where it lives."""

    @abstractmethod
    def render(self, data: dict[str, Any], fmt: OutputFormat, name: str) -> str:
        """
        Render run data in one format

        Args:
            data: Run data with "summary" and "details"
            fmt: Output format
            name: Artifact base name, unique per run

        Returns:
            Artifact locator

        Raises:
            RenderError: If the format cannot be produced
        """

    def artifact_size(self, locator: str) -> int:
        """Size in bytes of a rendered artifact, 0 when unknown."""
        return 0


def flatten(value: Any, prefix: str = "") -> Iterator[tuple[str, Any]]:
    """
    Flatten nested dictionaries and lists into dotted keys

    Example:
        {"a": [{"b": 1}]} -> ("a.0.b", 1)
    """
    if isinstance(value, dict):
        for key, item in value.items():
            yield from flatten(item, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from flatten(item, f"{prefix}.{index}" if prefix else str(index))
    else:
        yield prefix, value


class FileRenderer(Renderer):
    """
    Writes JSON and CSV artifacts to an output directory

    CSV artifacts hold one row per flattened value: section, key, value.
    PDF output is not produced locally.
    """

    def __init__(self, output_dir: str = "./report_output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @trace_function("render_artifact", component="reports")
    def render(self, data: dict[str, Any], fmt: OutputFormat, name: str) -> str:
        fmt = OutputFormat(fmt)
        safe_name = re.sub(r"[^A-Za-z0-9_.-]", "_", name)
        path = self.output_dir / f"{safe_name}.{fmt.value}"

        if fmt == OutputFormat.JSON:
            with open(path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        elif fmt == OutputFormat.CSV:
            with open(path, "w", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(["section", "key", "value"])
                for section in ("summary", "details"):
                    for key, value in flatten(data.get(section, {})):
                        writer.writerow([section, key, value])
        else:
            raise RenderError(f"{fmt.value} rendering is not supported by FileRenderer")

        logger.info(f"Rendered {fmt.value} artifact: {path}")
        return str(path)

    def artifact_size(self, locator: str) -> int:
        try:
            return os.path.getsize(locator)
        except OSError:
            return 0
