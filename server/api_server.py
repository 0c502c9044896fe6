"""FastAPI application entry point for docrag."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.core.ChatAgent import ChatAgent, load_agent_config
from server.core.ContextRetriever import ContextRetriever
from server.core.DocumentService import DocumentService
from server.core.RAGOrchestrator import RAGOrchestrator
from server.handlers.error_handlers import register_exception_handlers
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router
from server.routers.HealthRouter import router as health_router
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
helper_config = HelperConfig(logger=logging)
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = helper_config

    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [rag_client, llm_client]:
        await client.boot()
    logging.info("All clients booted successfully.")

    document_service = DocumentService(
        helper_config=app.state.helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
    )
    agent = ChatAgent(
        helper_config=app.state.helper_config,
        llm_client=llm_client,
        config=load_agent_config(app.state.helper_config, llm_client),
    )
    app.state.document_service = document_service
    app.state.rag_orchestrator = RAGOrchestrator(
        helper_config=app.state.helper_config,
        retriever=ContextRetriever(helper_config=app.state.helper_config, document_service=document_service),
        agent=agent,
    )

    await check_connections(rag_client, llm_client)

    # while the app is running...
    yield

    logging.info("Shutting down, closing all clients...")
    for client in [rag_client, llm_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="docrag",
    description=(
        "Upload text documents into a vector store, search them by similarity and chat "
        "with a hosted language model that can ground its answers in retrieved documents. "
        "Chat answers are streamed as server-sent events from POST /api/chat."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=helper_config.get_list_val("API_SERVER_CORS_ORIGINS", default=["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(chat_router)
app.include_router(document_router)
app.include_router(health_router)


async def check_connections(rag_client: RAGClientInterface, llm_client: LLMClientInterface) -> None:
    """Check connectivity to the configured backends on startup.

    Failures are logged, not fatal: the vector store collection is created
    lazily on first use and chat health is reported by GET /api/chat/health.
    """
    if not await rag_client.do_heartbeat():
        logging.warning(
            "RAG client '%s' is not reachable. Document operations will fail until it is.",
            rag_client.__class__.__name__,
        )

    try:
        result = await llm_client.do_healthcheck()
        if not result.is_success:
            logging.warning("LLM client is not reachable (status %d). Chat will not work.", result.status_code)
    except Exception as e:
        logging.warning("LLM client is not reachable (%s). Chat will not work.", e)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting docrag API Server v%s from root dir: %s on port %s...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
        os.environ.get("PORT", "3000"),
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "3000")))
