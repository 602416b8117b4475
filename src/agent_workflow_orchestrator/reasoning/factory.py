"""Factory for creating reasoning services."""

import logging

from agent_workflow_orchestrator.orchestrator.config import OrchestratorSettings
from agent_workflow_orchestrator.reasoning.http_provider import HttpReasoningService
from agent_workflow_orchestrator.reasoning.openai_provider import OpenAIReasoningService
from agent_workflow_orchestrator.reasoning.provider import ReasoningService

logger = logging.getLogger(__name__)


class ReasoningServiceFactory:
    """Factory for creating reasoning service instances."""

    @staticmethod
    def create(settings: OrchestratorSettings) -> ReasoningService:
        """Create a reasoning service based on configuration.

        Args:
            settings: Orchestrator settings specifying the provider.

        Returns:
            Configured reasoning service instance.

        Raises:
            ValueError: If the provider is not supported or lacks credentials.
        """
        logger.info(f"Creating reasoning service: {settings.reasoning_provider}")

        if settings.reasoning_provider == "http":
            return HttpReasoningService(
                base_url=settings.reasoning_service_url,
                api_key=settings.reasoning_service_api_key,
                timeout_seconds=settings.request_timeout_seconds,
            )
        elif settings.reasoning_provider == "openai":
            return OpenAIReasoningService(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                temperature=settings.openai_temperature,
                max_conversations=settings.openai_max_conversations,
            )
        else:
            raise ValueError(f"Unsupported reasoning provider: {settings.reasoning_provider}")
