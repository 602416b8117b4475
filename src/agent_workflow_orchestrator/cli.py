"""Console entry point.

The CLI is implemented in `agent_workflow_orchestrator.orchestrator.main`.
"""

from __future__ import annotations

from agent_workflow_orchestrator.orchestrator.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
