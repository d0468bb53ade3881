"""Environment-driven service settings."""

import os
from dataclasses import dataclass

from support_agent.clients.anthropic import AnthropicConfig
from support_agent.services.guard_rails import AI_RESPONSE_LIMIT, GuardRailConfig
from support_agent.services.support_agent import SUPPORT_MAX_ITERATIONS, SupportAgentConfig


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        number = int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e
    if number < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {number}")
    return number


def _env_float(name: str, default: float | None) -> float | None:
    value = os.getenv(name)
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e
    # Zero or negative disables the deadline
    return seconds if seconds > 0 else None


@dataclass(frozen=True)
class Settings:
    """Service settings read once at startup."""

    anthropic_api_key: str | None = None
    model: str = AnthropicConfig.model
    max_iterations: int = SUPPORT_MAX_ITERATIONS
    response_limit: int = AI_RESPONSE_LIMIT
    timeout_seconds: float | None = 120.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            model=os.getenv("SUPPORT_AGENT_MODEL") or AnthropicConfig.model,
            max_iterations=_env_int("SUPPORT_AGENT_MAX_ITERATIONS", SUPPORT_MAX_ITERATIONS),
            response_limit=_env_int("SUPPORT_AGENT_RESPONSE_LIMIT", AI_RESPONSE_LIMIT),
            timeout_seconds=_env_float("SUPPORT_AGENT_TIMEOUT_SECONDS", 120.0),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def anthropic_config(self) -> AnthropicConfig:
        return AnthropicConfig(model=self.model)

    def guard_rail_config(self) -> GuardRailConfig:
        return GuardRailConfig(response_limit=self.response_limit)

    def support_agent_config(self) -> SupportAgentConfig:
        return SupportAgentConfig(
            max_iterations=self.max_iterations,
            model=self.model,
            timeout_seconds=self.timeout_seconds,
        )
