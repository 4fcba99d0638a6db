"""
Start-up shim for forked entry points and artifacts.

Invoked as ``python -m procwatch.bootstrap PAYLOAD [ARGS...]`` where PAYLOAD
is a JSON object with ``classpath``, ``properties`` and exactly one of
``entry_point`` or ``artifact``. The classpath is prepended to ``sys.path``
and the properties are installed before the target runs.
"""

from __future__ import annotations

import json
import runpy
import sys
from typing import List, Optional

from procwatch.pipeline.entry_points import resolve_entry_point
from procwatch.pipeline.properties import install_system_properties
from procwatch.pipeline.result import to_outcome


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        print("usage: python -m procwatch.bootstrap PAYLOAD [ARGS...]", file=sys.stderr)
        return 2
    payload = json.loads(argv[0])
    args = argv[1:]

    sys.path[:0] = list(payload.get("classpath") or [])
    install_system_properties(payload.get("properties") or {})

    artifact = payload.get("artifact")
    if artifact:
        sys.argv = [artifact, *args]
        runpy.run_path(artifact, run_name="__main__")
        return 0

    function = resolve_entry_point(payload["entry_point"])
    return to_outcome(function(args)).exit_code


if __name__ == "__main__":
    sys.exit(main())
