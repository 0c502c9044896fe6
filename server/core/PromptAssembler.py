"""Builds the augmented prompt sent to the chat model.

Callers may pattern-match on FALLBACK_ANSWER, so its wording is fixed.
"""

from shared.models.document import SearchResult

FALLBACK_ANSWER = "I don't have enough information in your documents to answer this question."
DOCUMENT_SEPARATOR = "\n\n---\n\n"


def format_context(context_results: list[SearchResult]) -> str:
    """Render results as numbered [Document N] blocks, keeping their order."""
    blocks = [
        f"[Document {index}]\n{result.document.content}"
        for index, result in enumerate(context_results, start=1)
    ]
    return DOCUMENT_SEPARATOR.join(blocks)


def build_prompt(question: str, context_results: list[SearchResult]) -> str:
    """Wrap question with the retrieved context. Without context the question is returned unchanged."""
    if not context_results:
        return question

    return (
        f"Context information from documents:\n{format_context(context_results)}"
        f"{DOCUMENT_SEPARATOR}"
        "Based on the context above, please answer the following question. "
        f"If the context doesn't contain relevant information, say \"{FALLBACK_ANSWER}\"\n\n"
        f"Question: {question}"
    )
