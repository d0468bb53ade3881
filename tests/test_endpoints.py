"""Tests for API endpoints."""

import pytest
from conftest import ScriptedModelClient, text_response, tool_response
from fastapi.testclient import TestClient

from support_agent.api.endpoints import get_support_agent
from support_agent.main import app
from support_agent.prompts import FORWARDED_TO_HUMAN_MESSAGE

client = TestClient(app)


@pytest.fixture
def use_agent(make_agent):
    """Serve requests with a support agent backed by a scripted model."""

    def _use(model_client: ScriptedModelClient):
        agent = make_agent(model_client)
        app.dependency_overrides[get_support_agent] = lambda: agent
        return agent

    yield _use
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self):
        """Test that health check returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_check_response_structure(self):
        """Test that health check returns expected JSON structure."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data


class TestTicketEndpoint:
    """Tests for the ticket handling endpoint."""

    def test_human_request_is_escalated(self, use_agent):
        model_client = ScriptedModelClient()
        use_agent(model_client)

        response = client.post("/tickets/conv_1/handle", json={"ticket_content": "Ik wil een mens spreken"})

        assert response.status_code == 200
        data = response.json()
        assert data["conversation_id"] == "conv_1"
        assert data["outcome"] == "escalated"
        assert data["escalation_target"] == "human"
        assert data["tool_calls"] == []
        assert data["message"] == FORWARDED_TO_HUMAN_MESSAGE
        assert data["guard_rail"]["rule_id"] == "human_request"
        assert model_client.calls == []

    def test_handled_ticket_returns_records(self, use_agent):
        use_agent(
            ScriptedModelClient(
                [
                    tool_response(("respond_to_customer", {"message": "Ga naar Instellingen.", "close_ticket": True})),
                    text_response("Ga naar Instellingen."),
                ]
            )
        )

        response = client.post(
            "/tickets/conv_2/handle",
            json={"ticket_content": "Hoe exporteer ik mijn grootboek?", "customer_id": "CUST_001"},
        )

        data = response.json()
        assert data["outcome"] == "resolved"
        assert data["message"] == "Ga naar Instellingen."
        assert [call["name"] for call in data["tool_calls"]] == ["respond_to_customer"]
        assert data["iteration_count"] == 2

    def test_internal_errors_are_not_exposed(self, use_agent):
        use_agent(ScriptedModelClient(error=RuntimeError("secret stack detail")))

        response = client.post("/tickets/conv_3/handle", json={"ticket_content": "Hoe exporteer ik mijn grootboek?"})

        assert response.status_code == 200
        assert "secret" not in response.text
        assert response.json()["message"] == FORWARDED_TO_HUMAN_MESSAGE

    def test_empty_ticket_is_rejected(self, use_agent):
        use_agent(ScriptedModelClient())

        response = client.post("/tickets/conv_4/handle", json={"ticket_content": ""})

        assert response.status_code == 422

    def test_oversized_ticket_returns_400(self, use_agent):
        model_client = ScriptedModelClient(max_message_tokens=10)
        use_agent(model_client)

        response = client.post("/tickets/conv_6/handle", json={"ticket_content": "a" * 100})

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Message exceeds token limit")
        assert model_client.calls == []

    def test_unexpected_failure_returns_500(self, use_agent):
        agent = use_agent(ScriptedModelClient())

        async def broken(conversation_id, context):
            raise RuntimeError("database on fire")

        agent.handle_ticket = broken

        response = client.post("/tickets/conv_5/handle", json={"ticket_content": "Hoi"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to process ticket"


class TestClassifyEndpoint:
    """Tests for reclassifying stored records."""

    def test_classify_devops(self):
        response = client.post(
            "/classify",
            json={"tool_calls": [{"name": "escalate_to_devops", "input": {"summary": "500 errors"}}]},
        )

        assert response.status_code == 200
        assert response.json() == {"outcome": "escalated", "escalation_target": "devops"}

    def test_classify_empty_record(self):
        response = client.post("/classify", json={"tool_calls": []})

        assert response.json() == {"outcome": "pending", "escalation_target": None}


class TestAnalyzeEndpoint:
    """Tests for message triage."""

    def test_analyze_with_fallback(self, use_agent):
        use_agent(ScriptedModelClient(error=RuntimeError("overloaded")))

        response = client.post("/analyze", json={"content": "Mijn verbinding is verlopen"})

        assert response.status_code == 200
        data = response.json()
        assert data["category"] == "connection"
        assert data["requires_human"] is False
