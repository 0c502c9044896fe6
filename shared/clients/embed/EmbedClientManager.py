from shared.helper.HelperConfig import HelperConfig
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager:
    """Manager class to instantiate the configured embedding client."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val("EMBED_ENGINE", default="local")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> EmbedClientInterface:
        """Instantiate the embedding client for the configured engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"EmbedClient{engine}"
        try:
            module = __import__(
                f"shared.clients.embed.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported embedding engine '%s'. Error: %s" % (engine, e))
        client = client_class(helper_config=self.helper_config)
        if engine == "Local":
            self.logging.warning(
                "Using the local pseudo-embedding (dimension %d). It has no semantic meaning; search rankings are placeholders.",
                client.get_dimension(),
            )
        return client

    def get_client(self) -> EmbedClientInterface:
        return self.client
