"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from support_agent import __version__
from support_agent.api.endpoints import router
from support_agent.config import Settings
from support_agent.utils.logging import LogConfig, setup_logging

setup_logging(LogConfig(level=Settings.from_env().log_level))

app = FastAPI(
    title="Support Agent",
    description=(
        "First-line customer support agent: a language model works a ticket with a bounded set of "
        "support tools, guarded by deterministic escalation rules."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    tags_metadata=[
        {
            "name": "Tickets",
            "description": "Handle support tickets, classify finished conversations and triage messages.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("support_agent.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
