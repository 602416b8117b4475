"""Reasoning service package initialization."""

from agent_workflow_orchestrator.reasoning.factory import ReasoningServiceFactory
from agent_workflow_orchestrator.reasoning.provider import AgentResponse, ReasoningService

__all__ = [
    "AgentResponse",
    "ReasoningService",
    "ReasoningServiceFactory",
]
