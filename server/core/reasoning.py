"""Prompt transforms and defaults for the reasoning agent profile."""

from shared.models.agent import AgentConfig

REASONER_MODEL = "deepseek-reasoner"
REASONER_SYSTEM_PROMPT = (
    "You are DeepSeek-R1, a reasoning-focused AI assistant. "
    "Think step by step and provide detailed reasoning before giving your final answer."
)


def reasoner_config(base: AgentConfig) -> AgentConfig:
    """Return base switched to the reasoning model and system prompt."""
    return base.model_copy(update={"model": REASONER_MODEL, "system_prompt": REASONER_SYSTEM_PROMPT})


def build_reasoning_prompt(prompt: str, steps: int = 3) -> str:
    if steps < 1:
        raise ValueError("steps must be at least 1, got %d" % steps)
    return f"Please reason through this problem in {steps} steps before giving your final answer:\n\n{prompt}"


def build_chain_of_thought_prompt(prompt: str) -> str:
    return f"Let's think step by step. {prompt}"
