from contextlib import aclosing
from typing import AsyncIterator

from server.core.reasoning import build_chain_of_thought_prompt, build_reasoning_prompt, reasoner_config
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.agent import AgentConfig, AgentResponse

AGENT_PROFILES = ("chat", "reasoner")


def load_agent_config(helper_config: HelperConfig, llm_client: LLMClientInterface) -> AgentConfig:
    """Build the agent profile from env configuration.

    LLM_AGENT_PROFILE selects "chat" (default) or "reasoner"; LLM_SYSTEM_PROMPT,
    when set, replaces the profile's system prompt.

    Raises:
        ValueError: If the profile is unknown.
    """
    config = AgentConfig(
        model=llm_client.chat_model,
        temperature=llm_client.temperature,
        max_tokens=llm_client.max_tokens,
    )
    if helper_config.get_choice_val("LLM_AGENT_PROFILE", AGENT_PROFILES, default="chat") == "reasoner":
        config = reasoner_config(config)

    system_prompt = helper_config.get_optional_string_val("LLM_SYSTEM_PROMPT")
    if system_prompt:
        config = config.model_copy(update={"system_prompt": system_prompt})
    return config


class ChatAgent:
    """Chat agent on top of a hosted chat-completion backend.

    Holds the agent profile (model, sampling parameters and the system prompt)
    for this instance only. Backend failures surface as ChatBackendError.
    """

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface, config: AgentConfig) -> None:
        self.logging = helper_config.get_logger()
        self._llm = llm_client
        self._config = config

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_config(self) -> AgentConfig:
        return self._config

    def get_system_prompt(self) -> str:
        return self._config.system_prompt

    def update_system_prompt(self, system_prompt: str) -> None:
        self._config = self._config.model_copy(update={"system_prompt": system_prompt})

    ##########################################
    ################ CORE ####################
    ##########################################

    async def generate(self, prompt: str) -> AgentResponse:
        """Single-shot completion of prompt under the current system prompt."""
        content = await self._llm.do_chat(
            self._build_messages(prompt),
            model=self._config.model,
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
        )
        return AgentResponse(content=content)

    async def stream(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Yield the reply to prompt token by token, in arrival order.

        The sequence is lazy and can be consumed once. Closing it early closes
        the upstream stream. Parameters left as None use the agent profile.
        """
        tokens = self._llm.do_stream_chat(
            self._build_messages(prompt),
            model=model or self._config.model,
            temperature=self._config.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self._config.max_tokens,
        )
        async with aclosing(tokens):
            async for token in tokens:
                yield token

    async def reason(self, prompt: str, steps: int = 3) -> AgentResponse:
        return await self.generate(build_reasoning_prompt(prompt, steps))

    async def chain_of_thought(self, prompt: str) -> AgentResponse:
        return await self.generate(build_chain_of_thought_prompt(prompt))

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_messages(self, prompt: str) -> list[dict]:
        return [
            {"role": "system", "content": self._config.system_prompt},
            {"role": "user", "content": prompt},
        ]
