"""Tests for the tool registry and the support tool catalogue."""

from dataclasses import replace

import pytest

from support_agent.errors import ToolInputError
from support_agent.prompts import FORWARDED_TO_HUMAN_MESSAGE
from support_agent.services.backend import StoredMessage
from support_agent.tools.base import ParameterSchema, ToolDefinition, ToolResult, array, boolean, number, string
from support_agent.tools.registry import ToolsRegistry, create_support_registry

SUPPORT_TOOLS = [
    "search_docs",
    "check_connection_status",
    "get_customer_errors",
    "check_known_issues",
    "trigger_reauth",
    "get_customer_history",
    "get_plan_usage",
    "escalate_to_devops",
    "escalate_to_admin",
    "respond_to_customer",
]


async def _noop(params):
    return params


def _tool(name: str = "lookup", **parameters: ParameterSchema) -> ToolDefinition:
    return ToolDefinition(name=name, description=f"{name} tool", parameters=parameters, handler=_noop)


class TestToolDefinition:
    """Tests for parameter schemas and structural validation."""

    def test_json_schema(self):
        tool = _tool(
            query=string("Search terms", required=True),
            limit=number("Max results"),
            tags=array("Tags"),
            exact=boolean("Exact match"),
        )

        assert tool.get_json_schema() == {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search terms"},
                "limit": {"type": "number", "description": "Max results"},
                "tags": {"type": "array", "description": "Tags", "items": {"type": "string"}},
                "exact": {"type": "boolean", "description": "Exact match"},
            },
            "required": ["query"],
        }

    def test_missing_required_field(self):
        tool = _tool(query=string("Search terms", required=True))

        with pytest.raises(ToolInputError, match="Missing required parameter"):
            tool.validate_input({})

    def test_wrong_kind(self):
        tool = _tool(limit=number("Max results"))

        with pytest.raises(ToolInputError, match="must be of type number"):
            tool.validate_input({"limit": "ten"})

    def test_bool_is_not_a_number(self):
        tool = _tool(limit=number("Max results"))

        with pytest.raises(ToolInputError):
            tool.validate_input({"limit": True})

    def test_non_object_input(self):
        with pytest.raises(ToolInputError, match="must be an object"):
            _tool().validate_input(["not", "a", "dict"])

    def test_optional_and_unknown_fields_pass(self):
        tool = _tool(query=string("Search terms", required=True), limit=number("Max results"))

        assert tool.validate_input({"query": "export", "limit": None, "extra": 1}) == {
            "query": "export",
            "limit": None,
            "extra": 1,
        }


class TestToolsRegistry:
    """Tests for the registry contract."""

    def test_duplicate_names_are_rejected(self):
        with pytest.raises(ValueError, match="Duplicate tool name"):
            ToolsRegistry([_tool("a"), _tool("a")])

    def test_lookup(self):
        registry = ToolsRegistry([_tool("a"), _tool("b")])

        assert len(registry) == 2
        assert "a" in registry
        assert registry.has_tool("b")
        assert not registry.has_tool("c")
        assert registry.get("c") is None
        assert registry.get_tool_names() == ["a", "b"]

    def test_tool_schemas(self):
        registry = ToolsRegistry([_tool("a", q=string("Query", required=True))])

        assert registry.get_tool_schemas() == [
            {
                "name": "a",
                "description": "a tool",
                "input_schema": {
                    "type": "object",
                    "properties": {"q": {"type": "string", "description": "Query"}},
                    "required": ["q"],
                },
            }
        ]

    @pytest.mark.asyncio
    async def test_execute_success(self):
        result = await ToolsRegistry([_tool("echo")]).execute("echo", {"x": 1})

        assert result == ToolResult.ok({"x": 1})
        assert not result.is_error

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self):
        result = await ToolsRegistry([]).execute("nope", {})

        assert result.is_error
        assert result.error == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_execute_converts_exceptions(self):
        async def boom(params):
            raise KeyError("missing")

        registry = ToolsRegistry([ToolDefinition(name="boom", description="Fails", parameters={}, handler=boom)])

        result = await registry.execute("boom", {})

        assert result.is_error
        assert result.error.startswith("KeyError")


class TestSupportCatalogue:
    """Tests for the support tools against the in-memory backend."""

    @pytest.fixture
    def registry(self, tool_context):
        return create_support_registry(tool_context)

    def test_catalogue(self, registry):
        assert registry.get_tool_names() == SUPPORT_TOOLS
        for schema in registry.get_tool_schemas():
            assert schema["description"]
            assert schema["input_schema"]["type"] == "object"

    @pytest.mark.asyncio
    async def test_search_docs(self, registry):
        result = await registry.execute("search_docs", {"query": "verbinding vernieuwen"})

        assert result.output["results"][0]["slug"] == "verbinding-vernieuwen"

    @pytest.mark.asyncio
    async def test_check_connection_status_expired(self, registry):
        result = await registry.execute("check_connection_status", {"customer_id": "CUST_001"})

        assert result.output["has_issues"] is True
        assert result.output["connections"][0]["token_status"] == "expired"

    @pytest.mark.asyncio
    async def test_check_connection_status_expiring(self, tool_context):
        registry = create_support_registry(replace(tool_context, customer_id="CUST_003"))

        result = await registry.execute("check_connection_status", {"customer_id": "CUST_003"})

        assert [c["token_status"] for c in result.output["connections"]] == ["expiring_soon", "valid"]
        assert result.output["has_issues"] is True

    @pytest.mark.asyncio
    async def test_customer_errors_are_grouped(self, registry):
        result = await registry.execute("get_customer_errors", {"customer_id": "CUST_001"})

        assert result.output["total_errors"] == 2
        assert [(group["type"], group["count"]) for group in result.output["error_types"]] == [("AUTH_FAILED", 2)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("tool_input", "expected"),
        [
            ({"error_type": "AUTH_FAILED"}, ["Verlopen verbinding"]),
            ({"error_type": "HTTP", "error_message": "rate limit, too many requests"}, ["API limiet bereikt"]),
            ({"error_type": "SOMETHING_NEW"}, []),
        ],
    )
    async def test_check_known_issues(self, registry, tool_input, expected):
        result = await registry.execute("check_known_issues", tool_input)

        assert result.output["is_known"] is bool(expected)
        assert [match["name"] for match in result.output["matches"]] == expected

    @pytest.mark.asyncio
    async def test_plan_usage_at_limit(self, tool_context):
        registry = create_support_registry(replace(tool_context, customer_id="CUST_002"))

        result = await registry.execute("get_plan_usage", {"customer_id": "CUST_002"})

        assert result.output["api_calls"]["at_limit"] is True
        assert result.output["api_calls"]["percentage"] == 100
        assert result.output["recommendation"]

    @pytest.mark.asyncio
    async def test_required_customer_id_is_enforced(self, registry):
        result = await registry.execute("get_customer_history", {"customer_id": None})

        assert result.error == "Missing required parameter(s) for get_customer_history: customer_id"

    @pytest.mark.asyncio
    async def test_other_customer_is_refused(self, registry):
        result = await registry.execute("get_customer_errors", {"customer_id": "CUST_003"})

        assert result.error == "Access to data of other customers is not allowed"

    @pytest.mark.asyncio
    async def test_trigger_reauth_sends_email(self, registry, backend):
        result = await registry.execute("trigger_reauth", {"customer_id": "CUST_001"})

        assert result.output["email"] == "anna@example.nl"
        assert backend.sent_emails[0][1] == "Vernieuw je verbinding"
        assert backend.messages["conv_1"][0].sender_type == "system"

    @pytest.mark.asyncio
    async def test_escalate_to_admin(self, registry, backend):
        result = await registry.execute(
            "escalate_to_admin", {"reason": "Klant wil een andere factuur", "attempted_solutions": ["search_docs"]}
        )

        assert result.output["escalated"] is True
        assert backend.escalation_emails[0].customer_email == "anna@example.nl"
        assert backend.escalation_emails[0].attempted_solutions == ["search_docs"]
        assert backend.conversation_updates["conv_1"]["status"] == "waiting_support"
        assert backend.messages["conv_1"][-1].content == FORWARDED_TO_HUMAN_MESSAGE

    @pytest.mark.asyncio
    async def test_respond_to_customer(self, registry, backend):
        result = await registry.execute("respond_to_customer", {"message": "Check je email.", "confidence": 0.9})

        assert result.output["message_sent"] is True
        assert result.output["ticket_closed"] is False
        assert result.output["responses_remaining"] == 4
        assert backend.messages["conv_1"][0].ai_confidence == 0.9

    @pytest.mark.asyncio
    async def test_respond_refuses_at_limit(self, registry, backend):
        backend.messages["conv_1"] = [StoredMessage(sender_type="ai", content="eerder") for _ in range(5)]

        result = await registry.execute("respond_to_customer", {"message": "Nog een antwoord"})

        assert result.is_error
        assert "Maximum automated responses (5)" in result.error
        assert len(backend.messages["conv_1"]) == 5

    @pytest.mark.asyncio
    async def test_respond_refuses_blocked_content(self, registry, backend):
        result = await registry.execute("respond_to_customer", {"message": "Je wachtwoord is hunter2"})

        assert result.is_error
        assert "blocked content" in result.error
        assert "conv_1" not in backend.messages

    @pytest.mark.asyncio
    async def test_respond_refuses_low_confidence(self, registry, backend):
        result = await registry.execute(
            "respond_to_customer", {"message": "Verbind je koppeling opnieuw.", "confidence": 0.2}
        )

        assert result.is_error
        assert result.error == "Confidence 0.2 is below 0.5; response was not sent, escalate to admin"
        assert "conv_1" not in backend.messages
        assert "conv_1" not in backend.conversation_updates

    @pytest.mark.asyncio
    async def test_respond_at_threshold_is_sent(self, registry, backend):
        result = await registry.execute("respond_to_customer", {"message": "Check je email.", "confidence": 0.5})

        assert result.output["message_sent"] is True
        assert backend.messages["conv_1"][0].sender_type == "ai"
