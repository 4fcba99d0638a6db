# procwatch/pipeline/tasks/unpack.py
"""
Task that expands a single compressed file.

    unpack:
      format: gzip      # or bzip2
      src: data/table.csv.gz
      dest: data        # optional; defaults to the source's directory
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from procwatch.pipeline.plugins.unpack import UnpackPlugin, load_unpack_plugin
from procwatch.utils.config import section
from procwatch.utils.paths import resolve_path

from .base import Task, TaskContext


class UnpackTask(Task):
    """Expands a single gzip or bzip2 file."""

    name = "unpack"

    def prepare(self, cfg: Dict[str, Any]) -> Tuple[Dict[str, Any], UnpackPlugin]:
        block = section(cfg, "unpack")
        plugin = load_unpack_plugin(str(block.get("format", "gzip")))
        return {"src": block.get("src"), "dest": block.get("dest")}, plugin

    def run(self, ctx: TaskContext, inputs: Dict[str, Any], params: UnpackPlugin) -> int:
        params.unpack(
            resolve_path(ctx.base_dir, inputs["src"]),
            resolve_path(ctx.base_dir, inputs["dest"]),
        )
        return 0
