"""Agent Workflow Orchestrator.

Runs directed graphs of typed steps (agent calls, conditions, integration
calls, transforms) against an external reasoning service:
- configuration loaded from `.env`
- structured logging
- progress events for observers and a local execution history
"""

__version__ = "0.1.0"

from agent_workflow_orchestrator.orchestrator.config import OrchestratorSettings

__all__ = ["__version__", "OrchestratorSettings"]
