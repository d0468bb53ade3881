"""Documentation search and known-issue lookup tools."""

from typing import Any

from support_agent.tools.base import ToolDefinition, string
from support_agent.tools.context import SupportToolContext
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

EXCERPT_LENGTH = 200
MIN_KEYWORD_MATCHES = 2


def create_search_docs_tool(context: SupportToolContext) -> ToolDefinition:
    async def search_docs(params: dict[str, Any]) -> dict[str, Any]:
        query = params["query"]
        logger.info(f"Searching docs for: {query}")

        articles = await context.backend.search_articles(query, limit=5)
        if not articles:
            return {"results": [], "message": "Geen relevante artikelen gevonden."}

        return {
            "results": [
                {
                    "title": article.title,
                    "slug": article.slug,
                    "category": article.category,
                    "excerpt": article.content[:EXCERPT_LENGTH] + "...",
                    "url": f"/support/articles/{article.slug}",
                }
                for article in articles
            ],
            "message": f"{len(articles)} artikel(en) gevonden.",
        }

    return ToolDefinition(
        name="search_docs",
        description="Search the documentation and knowledge base for relevant articles.",
        parameters={"query": string("Search terms or the customer's question", required=True)},
        handler=search_docs,
    )


def create_check_known_issues_tool(context: SupportToolContext) -> ToolDefinition:
    async def check_known_issues(params: dict[str, Any]) -> dict[str, Any]:
        error_type: str = params["error_type"]
        error_message: str = params.get("error_message") or ""
        logger.info(f"Checking known issues for: {error_type}")

        search_text = f"{error_type} {error_message}".lower()
        matches = []
        for pattern in await context.backend.get_active_patterns():
            if error_type.lower() in (code.lower() for code in pattern.error_codes):
                matches.append(pattern)
                continue
            matched_keywords = [keyword for keyword in pattern.trigger_keywords if keyword.lower() in search_text]
            if len(matched_keywords) >= MIN_KEYWORD_MATCHES:
                matches.append(pattern)

        if not matches:
            return {
                "is_known": False,
                "matches": [],
                "message": "Dit is geen bekend issue. Mogelijk een nieuw probleem.",
            }

        return {
            "is_known": True,
            "matches": [{"name": m.name, "category": m.category, "solution": m.solution} for m in matches],
            "message": f"{len(matches)} bekende issue(s) gevonden met oplossingen.",
        }

    return ToolDefinition(
        name="check_known_issues",
        description="Check whether an error matches a known issue and get its workaround.",
        parameters={
            "error_type": string("Error type, e.g. AUTH_FAILED or RATE_LIMIT", required=True),
            "error_message": string("The error message, if known"),
        },
        handler=check_known_issues,
    )
