import json

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientDeepseek(LLMClientInterface):
    """DeepSeek chat completions over the OpenAI-compatible HTTP API."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.deepseek.com/v1", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Deepseek"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.deepseek.com/v1"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def _get_endpoint_chat(self) -> str:
        return "/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], model: str, temperature: float, max_tokens: int, stream: bool) -> dict:
        return {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": stream,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the assistant reply text from a /chat/completions response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The assistant reply text.

        Raises:
            ValueError: If the response does not contain a valid message.
        """
        choices = response_data.get("choices") or []
        content = (choices[0].get("message") or {}).get("content") if choices else None
        if content is None:
            raise ValueError(
                "DeepSeek chat response does not contain a valid message. "
                "Response keys: %s" % list(response_data.keys())
            )
        return content

    def is_stream_end(self, line: str) -> bool:
        return line.strip() == "data: [DONE]"

    def extract_stream_token(self, line: str) -> str | None:
        line = line.strip()
        # blank separators and ": keep-alive" comments
        if not line.startswith("data:"):
            return None
        event = json.loads(line[len("data:"):].strip())
        if "error" in event:
            raise ValueError("DeepSeek stream reported an error: %s" % event["error"])
        choices = event.get("choices") or []
        if not choices:
            return None
        return (choices[0].get("delta") or {}).get("content")
