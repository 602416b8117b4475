"""Node handlers: one per node kind.

Handlers are passive. They read the node's config and the run context, may
call a collaborator, and return a `NodeOutcome`. They never choose the next
node; the engine does that from the outcome's branch signal.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from agent_workflow_orchestrator.integrations.client import IntegrationClient
from agent_workflow_orchestrator.reasoning.provider import ReasoningService

from .context import ExecutionContext
from .errors import AgentInvocationError, IntegrationError, MissingAgentError, TransformError
from .expressions import evaluate_condition_safely
from .models import AgentMessage, WorkflowNode

logger = logging.getLogger(__name__)

DEFAULT_AGENT_MESSAGE = "Continue processing"


@dataclass(frozen=True, slots=True)
class NodeOutcome:
    result: Any
    branch: bool | None = None


class NodeHandler(Protocol):
    def execute(self, node: WorkflowNode, context: ExecutionContext) -> NodeOutcome: ...


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _as_number(value: Any) -> float:
    """Numeric coercion; anything non-numeric becomes NaN (never compares true)."""

    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(left: Any, right: Any) -> bool:
    if _is_number(left) and _is_number(right):
        return bool(left == right)
    return type(left) is type(right) and bool(left == right)


def extract_response_content(response: Any) -> str:
    """Pull a human-readable string out of a reasoning-service response."""

    if isinstance(response, str):
        return response
    if not isinstance(response, Mapping):
        return json.dumps(response, default=str)

    message = response.get("message")
    if message:
        return _as_text(message)

    result = response.get("result")
    if isinstance(result, Mapping):
        if result.get("text"):
            return _as_text(result["text"])
        if result.get("message"):
            return _as_text(result["message"])
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


class AgentNodeHandler:
    def __init__(self, reasoning: ReasoningService) -> None:
        self._reasoning = reasoning

    def execute(self, node: WorkflowNode, context: ExecutionContext) -> NodeOutcome:
        agent = node.agent
        if agent is None:
            raise MissingAgentError(node.id)

        message = (
            _as_text(node.config.get("message"))
            or context.last_user_message()
            or DEFAULT_AGENT_MESSAGE
        )

        try:
            reply = self._reasoning.invoke(
                message=message,
                agent_id=agent.agent_id,
                user_id=context.user_id,
                session_id=context.session_id,
            )
        except Exception as e:
            raise AgentInvocationError(agent.name, str(e) or type(e).__name__) from e

        if not reply.success:
            raise AgentInvocationError(agent.name, reply.error or "Agent execution failed")

        metadata = reply.response.get("metadata") if isinstance(reply.response, Mapping) else None
        context.append_message(
            AgentMessage(
                role="agent",
                content=extract_response_content(reply.response),
                agent_id=agent.agent_id,
                metadata=dict(metadata) if isinstance(metadata, Mapping) else None,
            )
        )
        return NodeOutcome(result=reply.response)


class ConditionNodeHandler:
    """Evaluate a free-form expression or a structured comparison."""

    def execute(self, node: WorkflowNode, context: ExecutionContext) -> NodeOutcome:
        config = node.config
        expression = config.get("condition")
        if expression:
            outcome = evaluate_condition_safely(str(expression), context.variables)
        else:
            outcome = compare(
                context.get_variable(str(config.get("variable", ""))),
                config.get("operator"),
                config.get("value"),
            )
        logger.debug("Condition evaluated", extra={"node_id": node.id, "outcome": outcome})
        return NodeOutcome(result=outcome, branch=outcome)


def compare(left: Any, operator: Any, right: Any) -> bool:
    if operator == "equals":
        return _strict_equals(left, right)
    if operator == "notEquals":
        return not _strict_equals(left, right)
    if operator == "contains":
        return _as_text(right) in _as_text(left)
    if operator == "greaterThan":
        return _as_number(left) > _as_number(right)
    if operator == "lessThan":
        return _as_number(left) < _as_number(right)
    return False


class IntegrationNodeHandler:
    def __init__(self, integrations: IntegrationClient) -> None:
        self._integrations = integrations

    def execute(self, node: WorkflowNode, context: ExecutionContext) -> NodeOutcome:
        config = node.config
        integration_type = str(config.get("integrationType") or "").strip()
        action = str(config.get("action") or "").strip()
        if not integration_type or not action:
            raise IntegrationError(
                integration_type or "<unset>", "integrationType and action are required"
            )

        params = config.get("params") or {}
        try:
            reply = self._integrations.invoke(integration_type, action, params, context.to_json())
        except Exception as e:
            raise IntegrationError(integration_type, str(e) or type(e).__name__) from e

        if not reply.success:
            raise IntegrationError(integration_type, reply.error or "Integration execution failed")

        output_variable = config.get("outputVariable")
        if output_variable:
            context.set_variable(str(output_variable), reply.result)
        return NodeOutcome(result=reply.result)


class TransformNodeHandler:
    def execute(self, node: WorkflowNode, context: ExecutionContext) -> NodeOutcome:
        config = node.config
        transformation = str(config.get("transformation") or "")
        value = context.get_variable(str(config.get("inputVariable", "")))

        if transformation == "json_parse":
            try:
                result = json.loads(value)
            except (TypeError, ValueError) as e:
                raise TransformError(transformation, str(e)) from e
        elif transformation == "json_stringify":
            try:
                result = json.dumps(value, separators=(",", ":"))
            except (TypeError, ValueError) as e:
                raise TransformError(transformation, str(e)) from e
        elif transformation == "uppercase":
            result = _as_text(value).upper()
        elif transformation == "lowercase":
            result = _as_text(value).lower()
        else:
            result = value

        output_variable = config.get("outputVariable")
        if output_variable:
            context.set_variable(str(output_variable), result)
        return NodeOutcome(result=result)


def default_handlers(
    reasoning: ReasoningService, integrations: IntegrationClient
) -> dict[str, NodeHandler]:
    return {
        "agent": AgentNodeHandler(reasoning),
        "condition": ConditionNodeHandler(),
        "integration": IntegrationNodeHandler(integrations),
        "transform": TransformNodeHandler(),
    }
