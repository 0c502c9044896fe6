from abc import abstractmethod
from typing import AsyncIterator

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors.AppErrors import BackendRequestError, ChatBackendError
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion defaults, overridable per request
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default="deepseek-chat")
        self.temperature = helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=0.7, min_val=0.0, max_val=2.0)
        self.max_tokens = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_TOKENS", default=1000, min_val=1))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/chat/completions")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], model: str, temperature: float, max_tokens: int, stream: bool) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).
            model (str): The model name.
            temperature (float): Sampling temperature.
            max_tokens (int): Completion token cap.
            stream (bool): Whether the backend should stream tokens.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the assistant reply text from a raw chat API response.

        Raises:
            ValueError: If the response does not contain a valid reply.
        """
        pass

    @abstractmethod
    def is_stream_end(self, line: str) -> bool:
        """Return True if a line of the streamed body marks the end of the stream."""
        pass

    @abstractmethod
    def extract_stream_token(self, line: str) -> str | None:
        """Extract the token text carried by one line of the streamed body.

        Returns:
            str | None: The token, or None for lines without content (keep-alives, role deltas).

        Raises:
            ValueError: If the line cannot be parsed.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict], model: str | None = None, temperature: float | None = None, max_tokens: int | None = None) -> str:
        """Send a chat/completion request and return the assistant reply text.

        Args:
            messages (list[dict]): OpenAI-format messages.
            model (str | None): Model override, defaults to LLM_CHAT_MODEL.
            temperature (float | None): Temperature override.
            max_tokens (int | None): Token cap override.

        Returns:
            str: The assistant reply text.

        Raises:
            ChatBackendError: On any transport, status or response format failure.
        """
        body = self.get_chat_payload(
            messages,
            model=model or self.chat_model,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.max_tokens,
            stream=False,
        )
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_chat(),
                json=body,
                raise_on_error=True,
            )
            return self.extract_chat_response(response.json())
        except (httpx.HTTPError, BackendRequestError, RuntimeError, ValueError) as e:
            raise ChatBackendError(str(e)) from e

    async def do_stream_chat(self, messages: list[dict], model: str | None = None, temperature: float | None = None, max_tokens: int | None = None) -> AsyncIterator[str]:
        """Stream the assistant reply token by token, in arrival order.

        Closing the generator early closes the upstream HTTP stream.

        Raises:
            ChatBackendError: On any transport, status or response format failure.
        """
        body = self.get_chat_payload(
            messages,
            model=model or self.chat_model,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.max_tokens,
            stream=True,
        )
        try:
            async with self.do_stream_request(method="POST", endpoint=self._get_endpoint_chat(), json=body) as response:
                async for line in response.aiter_lines():
                    if self.is_stream_end(line):
                        break
                    token = self.extract_stream_token(line)
                    if token:
                        yield token
        except (httpx.HTTPError, BackendRequestError, RuntimeError, ValueError) as e:
            raise ChatBackendError(str(e)) from e
