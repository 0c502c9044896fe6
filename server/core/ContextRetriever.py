from server.core.DocumentService import DocumentService
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import SearchResult


class ContextRetriever:
    """Best-effort lookup of document context for a chat question.

    A failing vector store degrades the answer to a plain chat reply: the
    failure is logged and an empty context is returned instead of raising.
    """

    def __init__(self, helper_config: HelperConfig, document_service: DocumentService) -> None:
        self.logging = helper_config.get_logger()
        self._documents = document_service

    async def retrieve(self, query: str, limit: int) -> list[SearchResult]:
        """Return up to limit documents ranked by similarity to query, never raising on store errors."""
        try:
            results = await self._documents.search(query, limit)
        except Exception as e:
            self.logging.warning("Failed to retrieve context from the vector store, continuing without it: %s", e)
            return []

        self.logging.debug("Retrieved %d context document(s) for query %r", len(results), query[:80])
        return results
