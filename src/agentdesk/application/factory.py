"""
Application Layer - Runtime Factory

Dependency injection factory wiring the conversation core with its
infrastructure adapters according to a configuration profile.

Key Responsibilities:
- Load configuration profiles (configs/<profile>.yaml)
- Instantiate the model provider, tool registry and response cache
- Build the default turn loop and the framework dispatcher
- Expose the profile's defaults (model, run limits) to the executor
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

from agentdesk.core.domain.dispatcher import FrameworkDispatcher
from agentdesk.core.domain.errors import ConfigurationError
from agentdesk.core.domain.guardrails import GuardrailFilter
from agentdesk.core.domain.models import RunLimits
from agentdesk.core.domain.turn_loop import DEFAULT_HISTORY_LIMIT, ConversationTurnLoop
from agentdesk.core.interfaces.llm import ModelProviderProtocol
from agentdesk.core.interfaces.strategies import FrameworkStrategyProtocol
from agentdesk.core.interfaces.tools import ToolProtocol
from agentdesk.core.prompts.chat_prompts import DEFAULT_SYSTEM_PROMPT
from agentdesk.infrastructure.cache.response_cache import (
    DEFAULT_MAX_ENTRIES,
    DEFAULT_TTL_SECONDS,
    ResponseCache,
)
from agentdesk.infrastructure.tools.native import BUILTIN_TOOLS
from agentdesk.infrastructure.tools.registry import ToolRegistry

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_FRAMEWORKS = ("crewai", "langchain", "workflow")


@dataclass
class ChatRuntime:
    """Everything needed to serve turns for one profile."""

    profile: str
    dispatcher: FrameworkDispatcher
    tool_registry: ToolRegistry
    default_model: str
    run_limits: RunLimits
    response_cache: ResponseCache | None = None


class AgentDeskFactory:
    """
    Factory for creating chat runtimes with dependency injection.

    Reads YAML configuration profiles and injects the matching
    infrastructure adapters into the core turn loop.
    """

    def __init__(self, config_dir: str = "configs"):
        """
        Args:
            config_dir: Path to directory containing profile YAML files
        """
        self.config_dir = Path(config_dir)
        self.logger = structlog.get_logger().bind(component="agentdesk_factory")

    def create_runtime(
        self,
        profile: str = "dev",
        model_provider: ModelProviderProtocol | None = None,
        extra_tools: list[ToolProtocol] | None = None,
    ) -> ChatRuntime:
        """
        Create a runtime for a profile.

        Args:
            profile: Configuration profile name
            model_provider: Provider override (tests, embedding applications)
            extra_tools: Additional tools registered next to the built-in ones

        Returns:
            ChatRuntime with injected dependencies

        Raises:
            FileNotFoundError: If the profile YAML does not exist
            ConfigurationError: If the profile is invalid
        """
        config = self._load_profile(profile)
        llm_config = config.get("llm") or {}
        default_model = llm_config.get("default_model", DEFAULT_MODEL)

        self.logger.info("creating_runtime", profile=profile, default_model=default_model)

        provider = model_provider or self._create_model_provider(config)
        registry = self._create_tool_registry(config, extra_tools or [])
        cache = self._create_response_cache(config)
        history_limit = int((config.get("history") or {}).get("max_messages", DEFAULT_HISTORY_LIMIT))

        turn_loop = ConversationTurnLoop(
            model_provider=provider,
            tool_registry=registry,
            response_cache=cache,
            guardrail=GuardrailFilter(),
            history_limit=history_limit,
            default_system_prompt=config.get("system_prompt") or DEFAULT_SYSTEM_PROMPT,
        )
        dispatcher = FrameworkDispatcher(turn_loop, self._create_strategies(config))

        return ChatRuntime(
            profile=profile,
            dispatcher=dispatcher,
            tool_registry=registry,
            default_model=default_model,
            run_limits=self._create_run_limits(config),
            response_cache=cache,
        )

    def _load_profile(self, profile: str) -> dict:
        """
        Load configuration profile from YAML file.

        Raises:
            FileNotFoundError: If profile YAML not found
        """
        profile_path = self.config_dir / f"{profile}.yaml"

        if not profile_path.exists():
            self.logger.error(
                "profile_not_found",
                profile=profile,
                path=str(profile_path),
                hint="Ensure profile YAML exists in configs directory",
            )
            raise FileNotFoundError(f"Profile not found: {profile_path}")

        with open(profile_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ConfigurationError(f"Profile {profile_path} must contain a mapping")

        self.logger.debug("profile_loaded", profile=profile, config_keys=list(config.keys()))
        return config

    def _create_model_provider(self, config: dict) -> ModelProviderProtocol:
        from agentdesk.infrastructure.llm.litellm_provider import LiteLLMProvider

        llm_config = config.get("llm") or {}
        return LiteLLMProvider(
            default_model=llm_config.get("default_model", DEFAULT_MODEL),
            models=llm_config.get("models") or {},
            timeout=int(llm_config.get("timeout", 60)),
            models_without_tools=llm_config.get("models_without_tools") or [],
        )

    def _create_tool_registry(self, config: dict, extra_tools: list[ToolProtocol]) -> ToolRegistry:
        tool_ids = config.get("tools")
        if tool_ids is None:
            tool_ids = list(BUILTIN_TOOLS)

        tools: list[ToolProtocol] = []
        for tool_id in tool_ids:
            tool_class = BUILTIN_TOOLS.get(tool_id)
            if tool_class is None:
                self.logger.warning("unknown_tool_in_profile", tool_id=tool_id, available=list(BUILTIN_TOOLS))
                continue
            tools.append(tool_class())
        tools.extend(extra_tools)

        try:
            return ToolRegistry.from_tools(tools)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def _create_response_cache(self, config: dict) -> ResponseCache | None:
        cache_config = config.get("cache") or {}
        if not cache_config.get("enabled", True):
            return None
        try:
            return ResponseCache(
                max_entries=int(cache_config.get("max_entries", DEFAULT_MAX_ENTRIES)),
                ttl_seconds=float(cache_config.get("ttl_seconds", DEFAULT_TTL_SECONDS)),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid cache configuration: {e}") from e

    def _create_run_limits(self, config: dict) -> RunLimits:
        limits: dict[str, Any] = config.get("limits") or {}
        defaults = RunLimits()
        run_limits = RunLimits(
            max_tool_iterations=int(limits.get("max_tool_iterations", defaults.max_tool_iterations)),
            max_model_calls=int(limits.get("max_model_calls", defaults.max_model_calls)),
        )
        if run_limits.max_model_calls < 1 or run_limits.max_tool_iterations < 0:
            raise ConfigurationError(f"Invalid run limits: {run_limits}")
        return run_limits

    def _create_strategies(self, config: dict) -> list[FrameworkStrategyProtocol]:
        from agentdesk.infrastructure.strategies.crewai import CrewAIStrategy
        from agentdesk.infrastructure.strategies.langchain import LangchainStrategy
        from agentdesk.infrastructure.strategies.workflow import WorkflowStrategy

        available = {
            "crewai": CrewAIStrategy,
            "langchain": LangchainStrategy,
            "workflow": WorkflowStrategy,
        }
        names = config.get("frameworks")
        if names is None:
            names = list(DEFAULT_FRAMEWORKS)

        strategies: list[FrameworkStrategyProtocol] = []
        for name in names:
            strategy_class = available.get(name)
            if strategy_class is None:
                self.logger.warning("unknown_framework_in_profile", framework=name)
                continue
            strategies.append(strategy_class())
        return strategies
