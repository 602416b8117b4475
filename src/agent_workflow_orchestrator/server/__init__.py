"""FastAPI server adapter for agent-workflow-orchestrator.

This module exposes a REST API over the orchestrator engine and stores.

Design intent:
- Keep business logic in `agent_workflow_orchestrator.orchestrator.*`
- Keep server-specific concerns (routing, CORS, event streaming) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from agent_workflow_orchestrator.server.app import create_app
