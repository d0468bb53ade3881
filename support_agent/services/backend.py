"""Support data backend interface and implementations.

Everything a tool touches outside the core (customer records, connections,
error logs, the ticket store, outgoing email) sits behind ``SupportBackend``.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Literal, Protocol

from cuid2 import cuid_wrapper

from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

SenderType = Literal["user", "ai", "admin", "system"]


@dataclass
class Customer:
    """Customer account."""

    id: str
    email: str
    name: str | None
    plan: str
    created_at: datetime


@dataclass
class Connection:
    """A customer's connection to the accounting platform."""

    id: str
    division_code: int
    division_name: str
    status: str  # active, disconnected, error
    token_expires_at: datetime | None
    last_used_at: datetime | None


@dataclass
class ErrorLog:
    """An error recorded for a customer."""

    id: str
    error_type: str
    error_code: str | None
    error_message: str
    created_at: datetime


@dataclass
class KnownIssue:
    """A known issue pattern with a canned solution."""

    id: str
    name: str
    trigger_keywords: list[str]
    error_codes: list[str]
    category: str
    solution: str


@dataclass
class Article:
    """Knowledge base article."""

    id: str
    slug: str
    title: str
    content: str
    category: str


@dataclass
class ConversationSummary:
    """A past support conversation."""

    id: str
    subject: str
    status: str
    category: str | None
    created_at: datetime
    resolution_type: str | None = None


@dataclass
class CustomerUsage:
    """Plan limits and current consumption."""

    plan: str
    api_calls_used: int
    api_calls_limit: int
    divisions_used: int
    divisions_limit: int


@dataclass
class StoredMessage:
    """A message persisted in a support conversation."""

    sender_type: SenderType
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    ai_confidence: float | None = None


@dataclass
class EscalationData:
    """Ticket handed to the engineering queue."""

    customer_id: str
    conversation_id: str
    summary: str
    priority: str
    error_context: str | None = None


@dataclass
class EscalationEmail:
    """Hand-over email for the human support team."""

    conversation_id: str
    customer_email: str
    customer_name: str | None
    customer_plan: str
    subject: str
    messages: list[StoredMessage]
    category: str
    confidence: float
    attempted_solutions: list[str] = field(default_factory=list)


class SupportBackend(Protocol):
    """Interface for the data stores and channels the support tools use."""

    async def search_articles(self, query: str, limit: int = 5) -> list[Article]: ...

    async def get_customer(self, customer_id: str) -> Customer | None: ...

    async def get_customer_connections(self, customer_id: str) -> list[Connection]: ...

    async def get_customer_errors(self, customer_id: str, hours_back: int = 24) -> list[ErrorLog]: ...

    async def get_active_patterns(self) -> list[KnownIssue]: ...

    async def get_customer_conversations(self, customer_id: str, limit: int = 5) -> list[ConversationSummary]: ...

    async def get_customer_usage(self, customer_id: str) -> CustomerUsage | None: ...

    async def get_conversation_messages(self, conversation_id: str) -> list[StoredMessage]: ...

    async def get_ai_response_count(self, conversation_id: str) -> int: ...

    async def add_message(self, conversation_id: str, message: StoredMessage) -> None: ...

    async def update_conversation(
        self,
        conversation_id: str,
        status: str | None = None,
        priority: str | None = None,
        handled_by: str | None = None,
    ) -> None: ...

    async def create_escalation(self, data: EscalationData) -> str: ...

    async def send_email(self, to: str, subject: str, body: str) -> bool: ...

    async def send_escalation_email(self, email: EscalationEmail) -> bool: ...


class InMemorySupportBackend:
    """In-memory support backend

    Uses mock customers, connections and known issues stored in memory.
    """

    def __init__(self):
        """Initialize with mock support data."""
        now = datetime.now(UTC)
        self.customers: dict[str, Customer] = {
            "CUST_001": Customer("CUST_001", "anna@example.nl", "Anna de Vries", "pro", now - timedelta(days=400)),
            "CUST_002": Customer("CUST_002", "bram@example.nl", "Bram Jansen", "free", now - timedelta(days=30)),
            "CUST_003": Customer("CUST_003", "chris@example.com", None, "business", now - timedelta(days=90)),
        }
        self.connections: dict[str, list[Connection]] = {
            "CUST_001": [
                Connection("CON_001", 1001, "Hoofdkantoor", "active", now - timedelta(days=2), now - timedelta(days=3)),
            ],
            "CUST_002": [
                Connection("CON_002", 2001, "Bram BV", "active", now + timedelta(days=60), now - timedelta(hours=1)),
            ],
            "CUST_003": [
                Connection("CON_003", 3001, "Chris Holding", "active", now + timedelta(days=3), now),
                Connection("CON_004", 3002, "Chris Retail", "error", now + timedelta(days=40), now),
            ],
        }
        self.error_logs: dict[str, list[ErrorLog]] = {
            "CUST_001": [
                ErrorLog("ERR_001", "AUTH_FAILED", "401", "Token expired", now - timedelta(hours=2)),
                ErrorLog("ERR_002", "AUTH_FAILED", "401", "Token expired", now - timedelta(hours=1)),
            ],
            "CUST_003": [
                ErrorLog("ERR_003", "RATE_LIMIT", "429", "Too many requests", now - timedelta(hours=5)),
            ],
        }
        self.patterns: list[KnownIssue] = [
            KnownIssue(
                "PAT_001",
                "Verlopen verbinding",
                ["expired", "verlopen", "401", "auth"],
                ["AUTH_FAILED"],
                "connection",
                "Vernieuw de verbinding via de link in de re-authenticatie email.",
            ),
            KnownIssue(
                "PAT_002",
                "API limiet bereikt",
                ["rate", "limit", "429", "too many"],
                ["RATE_LIMIT"],
                "billing",
                "Wacht een minuut en probeer het opnieuw, of upgrade naar een hoger plan.",
            ),
        ]
        self.articles: list[Article] = [
            Article(
                "ART_001",
                "verbinding-vernieuwen",
                "Verbinding vernieuwen",
                "Zo vernieuw je je verbinding...",
                "connection",
            ),
            Article(
                "ART_002", "api-limieten", "API limieten per plan", "Elk plan heeft een eigen limiet...", "billing"
            ),
        ]
        self.history: dict[str, list[ConversationSummary]] = {
            "CUST_003": [
                ConversationSummary("CONV_OLD_1", "Rate limit", "resolved", "billing", now - timedelta(days=20), "ai"),
            ],
        }
        self.usage: dict[str, CustomerUsage] = {
            "CUST_001": CustomerUsage("pro", 4_200, 10_000, 1, 3),
            "CUST_002": CustomerUsage("free", 1_000, 1_000, 1, 1),
            "CUST_003": CustomerUsage("business", 42_000, 50_000, 2, 10),
        }

        self.messages: dict[str, list[StoredMessage]] = {}
        self.conversation_updates: dict[str, dict[str, str]] = {}
        self.escalations: dict[str, EscalationData] = {}
        self.sent_emails: list[tuple[str, str, str]] = []
        self.escalation_emails: list[EscalationEmail] = []

    async def search_articles(self, query: str, limit: int = 5) -> list[Article]:
        terms = [term for term in query.lower().split() if len(term) > 2]
        matches = [
            article
            for article in self.articles
            if any(term in f"{article.title} {article.content} {article.category}".lower() for term in terms)
        ]
        return matches[:limit]

    async def get_customer(self, customer_id: str) -> Customer | None:
        return self.customers.get(customer_id)

    async def get_customer_connections(self, customer_id: str) -> list[Connection]:
        return list(self.connections.get(customer_id, []))

    async def get_customer_errors(self, customer_id: str, hours_back: int = 24) -> list[ErrorLog]:
        cutoff = datetime.now(UTC) - timedelta(hours=hours_back)
        return [log for log in self.error_logs.get(customer_id, []) if log.created_at >= cutoff]

    async def get_active_patterns(self) -> list[KnownIssue]:
        return list(self.patterns)

    async def get_customer_conversations(self, customer_id: str, limit: int = 5) -> list[ConversationSummary]:
        return self.history.get(customer_id, [])[:limit]

    async def get_customer_usage(self, customer_id: str) -> CustomerUsage | None:
        return self.usage.get(customer_id)

    async def get_conversation_messages(self, conversation_id: str) -> list[StoredMessage]:
        return list(self.messages.get(conversation_id, []))

    async def get_ai_response_count(self, conversation_id: str) -> int:
        return sum(1 for message in self.messages.get(conversation_id, []) if message.sender_type == "ai")

    async def add_message(self, conversation_id: str, message: StoredMessage) -> None:
        self.messages.setdefault(conversation_id, []).append(message)

    async def update_conversation(
        self,
        conversation_id: str,
        status: str | None = None,
        priority: str | None = None,
        handled_by: str | None = None,
    ) -> None:
        updates = {"status": status, "priority": priority, "handled_by": handled_by}
        self.conversation_updates.setdefault(conversation_id, {}).update(
            {key: value for key, value in updates.items() if value is not None}
        )

    async def create_escalation(self, data: EscalationData) -> str:
        escalation_id = cuid()
        self.escalations[escalation_id] = data
        logger.info(f"Created escalation {escalation_id} for conversation {data.conversation_id}")
        return escalation_id

    async def send_email(self, to: str, subject: str, body: str) -> bool:
        self.sent_emails.append((to, subject, body))
        return True

    async def send_escalation_email(self, email: EscalationEmail) -> bool:
        self.escalation_emails.append(email)
        return True
