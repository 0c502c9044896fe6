from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return "embed"

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "local"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Returns the length of every vector produced by this client."""
        pass

    ##########################################
    ############### EMBEDDING ################
    ##########################################

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            list[list[float]]: One vector per text, in input order.
        """
        pass

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single search query."""
        vectors = await self.embed_documents([text])
        return vectors[0]
