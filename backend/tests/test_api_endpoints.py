"""
API tests for server.py
========================
Routes are exercised through FastAPI's TestClient with the auth and
database dependencies overridden; AI calls are patched at the server
module boundary.
"""
import pytest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from auth_service import TokenData
from leads.errors import ConfigurationError, MalformedResponseError, RateLimitError
from leads.repair import parse_leads
from models import AIAnalysisResponse, BusinessLead
from server import app, get_current_user, get_db, sessions

USER_ID = "user-123"


@pytest.fixture
def api(mk_supabase, table):
    """TestClient for a signed-in user; call api.use_tables({...}) to seed the DB."""
    user = TokenData(user_id=USER_ID, tenant_id=USER_ID, email="owner@example.com", access_token="tok")
    state = {"db": mk_supabase({})}

    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_db] = lambda: state["db"]
    sessions.reset(USER_ID)

    client = TestClient(app)
    client.use_tables = lambda tables: state.update(db=mk_supabase(tables))
    client.table = table
    yield client

    app.dependency_overrides.clear()
    sessions.reset(USER_ID)


def _leads(n):
    return [BusinessLead(id=f"lead-9-{i}", name=f"Biz {i}", address="Av. Paulista") for i in range(n)]


# ============ Auth ============

class TestAuthGuard:
    def test_missing_header(self):
        response = TestClient(app).get("/api/dashboard/metrics")
        assert response.status_code == 401

    def test_wrong_scheme(self):
        response = TestClient(app).get("/api/leads", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401

    def test_unconfigured_auth_is_503(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        response = TestClient(app).get("/api/leads", headers={"Authorization": "Bearer abc"})
        assert response.status_code == 503

    def test_health_is_public(self):
        response = TestClient(app).get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============ Dashboard ============

class TestDashboard:
    def test_metrics_placeholder_when_no_data(self, api):
        response = api.get("/api/dashboard/metrics")
        assert response.status_code == 200
        body = response.json()
        assert body["totalRevenue"] == 0
        assert [p["date"] for p in body["revenueHistory"]] == ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun"]

    def test_metrics_open_chat_with_context(self, api):
        api.use_tables({
            "revenue_metrics": api.table([
                {"date": "2024-01-01", "value": 100},
                {"date": "2024-02-01", "value": 150},
            ]),
            "profiles": api.table(None, count=3),
        })
        body = api.get("/api/dashboard/metrics").json()
        assert body["revenueGrowth"] == 50.0
        assert body["averageTicket"] == 50.0

        session = sessions.get(USER_ID)
        assert session.chat is not None
        assert session.chat.has_context is True
        assert "R$ 150" in session.chat.system_instruction

    def test_insights_never_fail(self, api):
        fallback = AIAnalysisResponse(insight="x", recommendation="y", risk_level="low")
        with patch("server.analyze_business_metrics", AsyncMock(return_value=fallback)) as analyze:
            response = api.get("/api/dashboard/insights")
        assert response.status_code == 200
        assert response.json() == {"insight": "x", "recommendation": "y", "riskLevel": "low"}
        analyze.assert_awaited_once()


# ============ Billing & Users ============

class TestBilling:
    def test_free_tier(self, api):
        api.use_tables({"subscriptions": api.table(None)})
        body = api.get("/api/billing/subscription").json()
        assert body["status"] == "inactive"
        assert body["plan"]["id"] == "free_tier"
        assert "nextBillingDate" in body

    def test_hard_failure_is_502(self, api):
        api.use_tables({"subscriptions": api.table(error=RuntimeError("boom"))})
        assert api.get("/api/billing/subscription").status_code == 502

    def test_unknown_plan_interval_still_answers(self, api):
        api.use_tables({"subscriptions": api.table({
            "status": "active", "current_period_end": "2026-03-01",
            "plans": {"id": "p1", "name": "Pro", "price": 99, "interval": "weekly"},
        })})
        response = api.get("/api/billing/subscription")
        assert response.status_code == 200
        assert response.json()["plan"]["interval"] == "month"

    def test_users(self, api):
        api.use_tables({"profiles": api.table([{"id": "u1", "full_name": "Ana"}])})
        body = api.get("/api/users").json()
        assert body[0]["name"] == "Ana"
        assert body[0]["role"] == "user"


# ============ Regions ============

class TestRegions:
    def test_states(self, api):
        assert len(api.get("/api/regions/states").json()) == 27

    def test_unknown_state_404(self, api):
        assert api.get("/api/regions/states/XX/cities").status_code == 404


# ============ Leads ============

class TestLeads:
    def test_search_replaces_board(self, api):
        search = AsyncMock(return_value=_leads(2))
        with patch("server.search_businesses", search):
            response = api.post("/api/leads/search", json={"state": "SP", "city": "Campinas", "niche": "padaria"})

        assert response.status_code == 200
        body = response.json()
        assert [l["name"] for l in body["leads"]] == ["Biz 0", "Biz 1"]
        assert body["error"] is None
        search.assert_awaited_once_with("São Paulo", "Campinas", "padaria")

    def test_parsed_board_serializes(self, api):
        leads = parse_leads('[{"name":"A","rating":1e999},{"name":"B","rating":4.1}]', now_ms=1)
        with patch("server.search_businesses", AsyncMock(return_value=leads)):
            response = api.post("/api/leads/search", json={"state": "SP", "niche": "x"})

        assert response.status_code == 200
        assert [l["rating"] for l in response.json()["leads"]] == [None, 4.1]
        assert api.get("/api/leads").status_code == 200

    def test_malformed_constant_keeps_board_readable(self, api):
        def search(*args):
            return parse_leads('[{"name":"A","rating":NaN}]')

        with patch("server.search_businesses", AsyncMock(side_effect=search)):
            response = api.post("/api/leads/search", json={"state": "SP", "niche": "x"})

        assert response.status_code == 502
        assert response.json()["error"] == "malformed_response"
        assert api.get("/api/leads").status_code == 200

    def test_city_defaults_to_state(self, api):
        search = AsyncMock(return_value=_leads(1))
        with patch("server.search_businesses", search):
            api.post("/api/leads/search", json={"state": "RJ", "niche": "gym"})
        search.assert_awaited_once_with("Rio de Janeiro", "RJ", "gym")

    def test_no_results_message(self, api):
        with patch("server.search_businesses", AsyncMock(return_value=[])):
            body = api.post("/api/leads/search", json={"state": "SP", "niche": "x"}).json()
        assert body["leads"] == []
        assert body["error"] == "No results found for these criteria."

    @pytest.mark.parametrize("error,status", [
        (RateLimitError("Request quota exceeded. Please try again later."), 429),
        (MalformedResponseError("Could not process the data returned by the AI."), 502),
        (ConfigurationError("OpenAI API key is not configured or is invalid."), 503),
    ])
    def test_typed_failures(self, api, error, status):
        with patch("server.search_businesses", AsyncMock(side_effect=error)):
            response = api.post("/api/leads/search", json={"state": "SP", "niche": "x"})
        assert response.status_code == status
        assert response.json() == {"detail": error.message, "error": error.code}
        assert sessions.get(USER_ID).leads.last_error == error.message
        assert sessions.get(USER_ID).leads.searching is False

    def test_single_flight(self, api):
        sessions.get(USER_ID).leads.searching = True
        with patch("server.search_businesses", AsyncMock(return_value=[])) as search:
            response = api.post("/api/leads/search", json={"state": "SP", "niche": "x"})
        assert response.status_code == 409
        search.assert_not_awaited()

    def test_invalid_request(self, api):
        assert api.post("/api/leads/search", json={"state": "SP", "niche": ""}).status_code == 422

    def test_toggle(self, api):
        with patch("server.search_businesses", AsyncMock(return_value=_leads(2))):
            api.post("/api/leads/search", json={"state": "SP", "niche": "x"})

        body = api.post("/api/leads/lead-9-1/toggle").json()
        assert body["lead"]["status"] == "saved"
        assert body["savedCount"] == 1
        assert api.get("/api/leads").json()["savedCount"] == 1

        assert api.post("/api/leads/nope/toggle").status_code == 404


# ============ Chat ============

class TestChat:
    def test_transcript_before_chat_opens(self, api):
        body = api.get("/api/chat/messages").json()
        assert len(body) == 1
        assert body[0]["role"] == "model"
        assert sessions.get(USER_ID).chat is None

    def test_send_without_metrics_opens_bare_session(self, api):
        with patch("chat_service.get_client") as get_client:
            get_client.return_value.chat.completions.create = AsyncMock(side_effect=RuntimeError("down"))
            response = api.post("/api/chat/messages", json={"message": "hi"})

        assert response.status_code == 200
        assert response.json()["text"] == "Connection error. Please try again."
        assert sessions.get(USER_ID).chat.has_context is False
        assert len(api.get("/api/chat/messages").json()) == 3

    def test_blank_message(self, api):
        assert api.post("/api/chat/messages", json={"message": "  "}).status_code == 400


# ============ Settings & Session ============

class TestSettingsAndSession:
    def test_settings_roundtrip(self, api):
        assert api.get("/api/settings").json()["mfaEnabled"] is True
        body = api.put("/api/settings", json={"mfa_enabled": False}).json()
        assert body["mfaEnabled"] is False
        assert body["emailNotifications"] is True

    def test_reset_session(self, api):
        sessions.get(USER_ID).leads.replace(_leads(1))
        assert api.delete("/api/session").json() == {"success": True}
        assert api.get("/api/leads").json()["leads"] == []
