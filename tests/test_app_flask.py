"""Tests for the Flask API surface, chat assistant and search."""
import pytest

import core
from app_flask import create_app


@pytest.fixture
def client(service, settings):
    app = create_app(service=service, settings=settings)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def fake_llm(monkeypatch):
    prompts = []

    def complete(prompt, settings, max_new_tokens=300, temp=0.7):
        prompts.append(prompt)
        return "  Energy leads global emissions.  ", "ollama"

    monkeypatch.setattr(core, "llm_complete", complete)
    return prompts


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json()["status"] == "ok"
    assert r.get_json()["cacheEntries"] == 0
    client.get("/api/emissions/countries?countries=CHN")
    assert client.get("/api/health").get_json()["cacheEntries"] > 0


def test_countries_route(client):
    rows = client.get("/api/emissions/countries?since=2023&to=2023&limit=2").get_json()
    assert rows == [
        {"country": "China", "iso_code": "CHN", "rank": 1, "co2": 12000, "share_global_co2": 30.0, "year": 2023},
        {"country": "United States", "iso_code": "USA", "rank": 2, "co2": 5000, "share_global_co2": 12.5,
         "year": 2023},
    ]


def test_non_numeric_query_defaults(client):
    data = client.get("/api/emissions/by-region?since=abc&to=").get_json()
    assert data["yearRange"] == {"since": 2023, "to": 2023}
    assert data["regions"][0]["name"] == "Asia"
    assert data["topCountries"][0]["iso_code"] == "CHN"


def test_summary(client):
    data = client.get("/api/emissions/summary").get_json()
    assert data["totalEmissions"] == 40000
    assert data["totalIndustries"] == 6
    assert data["topIndustry"]["totalEmissions"] == 14000
    assert data["apiStatus"] == "live"


def test_industry_and_sector_routes(client):
    industries = client.get("/api/emissions/by-industry").get_json()
    assert industries["industries"][0]["name"] == "Energy"
    sectors = client.get("/api/emissions/by-sector").get_json()
    assert sectors["total"] == 11000


def test_trends_route_default_countries(client, session):
    data = client.get("/api/emissions/trends?startYear=2022&endYear=2023").get_json()
    assert [t["year"] for t in data["trends"]] == [2022, 2023]
    assert data["yearRange"] == {"startYear": 2022, "endYear": 2023}
    queries = {p["countries"] for e, p in session.calls if e == "country/emissions"}
    assert queries == {"CHN,USA,IND,RUS,JPN"}


def test_gases_and_definitions(client):
    assert client.get("/api/emissions/gases?limit=2").get_json()["countries"][0]["country"] == "CHN"
    assert len(client.get("/api/emissions/definitions/countries").get_json()) == 6
    assert client.get("/api/emissions/definitions/sectors").get_json()[0]["name"] == "power"
    years = client.get("/api/emissions/years").get_json()
    assert years["minYear"] == 2015 and years["maxYear"] == 2025


def test_upstream_down_still_200(down_service, settings):
    client = create_app(service=down_service, settings=settings).test_client()
    r = client.get("/api/emissions/countries")
    assert r.status_code == 200
    assert r.get_json() == []
    assert client.get("/api/emissions/summary").get_json()["apiStatus"] == "error"


class TestChat:
    def test_requires_message(self, client):
        assert client.post("/api/chat", json={}).status_code == 400
        assert client.post("/api/chat", json={"message": 42}).status_code == 400
        assert client.post("/api/chat", json={"message": "   "}).status_code == 400
        assert client.post("/api/chat", json={"message": "x" * 2001}).status_code == 400

    def test_reply_with_data_context(self, client, fake_llm):
        r = client.post("/api/chat", json={
            "message": "Who emits the most?",
            "history": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}, "junk"],
        })
        assert r.status_code == 200
        assert r.get_json() == {"response": "Energy leads global emissions.", "source": "ollama"}
        prompt = fake_llm[0]
        assert "Global CO2 Emissions: 40,000 Million Tonnes" in prompt
        assert "1. China (CHN): 12,000 MT CO2 (30.0% of global)" in prompt
        assert "- Asia: 15,000 MT" in prompt
        assert "Assistant: hello" in prompt
        assert prompt.endswith("User: Who emits the most?\nAssistant:")

    def test_context_when_data_unavailable(self, down_service):
        assert core.build_data_context(down_service) == core.CONTEXT_UNAVAILABLE

    def test_no_llm_available(self, client, monkeypatch):
        def no_llm(prompt, settings, max_new_tokens=300, temp=0.7):
            raise RuntimeError("transformers/torch not installed")

        monkeypatch.setattr(core, "llm_complete", no_llm)
        data = client.post("/api/chat", json={"message": "hi"}).get_json()
        assert data["source"] == "unavailable"
        assert data["response"] == core.ERROR_MESSAGES["not_configured"]

    def test_history_trimmed(self):
        history = [{"role": "user", "content": str(i)} for i in range(30)]
        assert [h["content"] for h in core.clean_history(history)] == [str(i) for i in range(10, 30)]
        assert core.clean_history("nope") == []

    def test_status(self, client, monkeypatch):
        monkeypatch.setattr(core, "have_ollama", lambda settings: True)
        data = client.get("/api/chat/status").get_json()
        assert data == {"available": True, "provider": "ollama", "providers": ["ollama", "flan-t5"]}


class TestSearch:
    def test_requires_query(self, client):
        assert client.post("/api/search", json={}).status_code == 400

    def test_curated_results_without_key(self, client):
        data = client.post("/api/search", json={"query": "methane from farming"}).get_json()
        assert data["source"] == "demo"
        assert data["results"][0]["source"] == "nature.com"
        assert set(data["results"][0]) == {"title", "snippet", "link", "source"}

    def test_unmatched_query_returns_first_five(self):
        results = core.curated_results("zzzz")
        assert len(results) == 5
        assert results[0]["source"] == "iea.org"

    def test_serper_used_with_key(self, settings, monkeypatch):
        settings.serper_api_key = "k" * 32
        seen = {}

        class Resp:
            def raise_for_status(self):
                pass

            def json(self):
                return {"organic": [{"title": "T", "snippet": "S", "link": "https://www.example.org/a"}]}

        def post(url, headers=None, json=None, timeout=None):
            seen.update(url=url, headers=headers, json=json)
            return Resp()

        monkeypatch.setattr(core.requests, "post", post)
        data = core.search_emissions_news("steel", settings)
        assert data == {"results": [{"title": "T", "snippet": "S", "link": "https://www.example.org/a",
                                     "source": "example.org"}], "source": "serper"}
        assert seen["json"] == {"q": "steel emissions climate environment", "num": 5}
        assert seen["headers"]["X-API-KEY"] == "k" * 32

    def test_serper_failure_falls_back(self, settings, monkeypatch):
        settings.serper_api_key = "k" * 32

        def post(*args, **kwargs):
            raise core.requests.ConnectionError("down")

        monkeypatch.setattr(core.requests, "post", post)
        assert core.search_emissions_news("building retrofit", settings)["source"] == "demo"
