from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager:
    """Manager class to instantiate the configured RAG client."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """Read the RAG engine name from env configuration.

        Returns:
            str: Capitalised engine name (e.g. "Chroma").
        """
        engine = self.helper_config.get_string_val("RAG_ENGINE", default="chroma")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> RAGClientInterface:
        """Instantiate the RAG client for the configured engine.

        Returns:
            RAGClientInterface: The instantiated client.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"RAGClient{engine}"
        try:
            module = __import__(
                f"shared.clients.rag.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported RAG engine '%s'. Error: %s" % (engine, e))
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated RAG client for engine: %s", engine)
        return client

    def get_client(self) -> RAGClientInterface:
        """Return the instantiated RAG client."""
        return self.client
