from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."


class AgentConfig(BaseModel):
    """Everything that distinguishes one chat agent profile from another."""

    model: str = "deepseek-chat"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1)


class AgentResponse(BaseModel):
    content: str
