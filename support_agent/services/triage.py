"""Keyword-based triage for support messages.

Used when model-based analysis is unavailable or returns something that
cannot be parsed.
"""

import re

from support_agent.models.agent import MessageAnalysis
from support_agent.services.guard_rails import GuardRailEngine

URGENCY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "high": (
        "urgent", "dringend", "asap", "immediately", "critical", "production", "productie", "down", "broken", "kapot"
    ),
    "low": ("question", "vraag", "wondering", "curious", "feature request", "suggestion", "suggestie"),
}

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "connection": (
        "connection", "verbinding", "connect", "disconnect", "oauth", "token", "expired", "verlopen", "mcp", "api key",
    ),
    "billing": (
        "billing", "factuur", "invoice", "payment", "betaling", "subscription", "abonnement", "plan", "upgrade",
        "limiet", "limit", "quota",
    ),
    "bug": (
        "bug", "error", "fout", "crash", "broken", "kapot", "not working", "werkt niet", "500", "404", "401", "403",
    ),
    "feature": (
        "feature", "functie", "request", "suggestion", "suggestie", "would be nice", "zou fijn zijn", "can you add",
        "kun je toevoegen",
    ),
    "account": (
        "account", "profile", "profiel", "settings", "instellingen", "password", "wachtwoord", "email",
    ),
}  # fmt: skip

ERROR_CODE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(4\d{2}|5\d{2})\b"),  # HTTP status codes
    re.compile(r"error[_\s-]?code[:\s]+(\w+)", re.IGNORECASE),
    re.compile(r"\[(ERR_\w+)\]"),
    re.compile(r"\b(ECONNREFUSED|ETIMEDOUT|ENOTFOUND)\b", re.IGNORECASE),
)

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "that", "with", "have", "this", "from", "they",
        "het", "een", "van", "dat", "met", "voor", "zijn", "niet", "maar",
        "kan", "naar", "ook", "bij", "dan", "nog", "wel", "wat", "als",
    }
)  # fmt: skip

MAX_KEYWORDS = 5


def extract_keywords(content: str) -> list[str]:
    """Distinct words longer than two characters, minus stop words, in order of appearance."""
    words = re.sub(r"[^\w\s]", " ", content.lower()).split()
    keywords = [word for word in words if len(word) > 2 and word not in STOP_WORDS]
    return list(dict.fromkeys(keywords))


def detect_error_codes(content: str) -> list[str]:
    codes = []
    for pattern in ERROR_CODE_PATTERNS:
        codes.extend(match.group(1) for match in pattern.finditer(content))
    return list(dict.fromkeys(codes))


def determine_category(content: str, keywords: list[str]) -> str:
    """Score each category on literal hits plus partial keyword overlap; ties keep the earlier category."""
    lower_content = content.lower()
    best_category = "other"
    best_score = 0.0

    for category, category_keywords in CATEGORY_KEYWORDS.items():
        score = float(sum(1 for keyword in category_keywords if keyword in lower_content))
        for word in keywords:
            if any(word in keyword or keyword in word for keyword in category_keywords):
                score += 0.5

        if score > best_score:
            best_score = score
            best_category = category

    return best_category


def determine_priority(content: str, error_codes: list[str]) -> str:
    lower_content = content.lower()
    if any(keyword in lower_content for keyword in URGENCY_KEYWORDS["high"]):
        return "high"
    if any(keyword in lower_content for keyword in URGENCY_KEYWORDS["low"]):
        return "low"
    if any(code.startswith("5") for code in error_codes):
        return "high"
    return "normal"


def triage_message(content: str, guard_rails: GuardRailEngine | None = None) -> MessageAnalysis:
    """Deterministic analysis of a support message."""
    guard_rails = guard_rails or GuardRailEngine()
    keywords = extract_keywords(content)
    error_codes = detect_error_codes(content)

    return MessageAnalysis(
        category=determine_category(content, keywords),
        priority=determine_priority(content, error_codes),
        sentiment="neutral",
        keywords=keywords[:MAX_KEYWORDS],
        error_codes=error_codes,
        requires_human=guard_rails.customer_wants_human(content),
    )
