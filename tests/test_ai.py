import json

import pytest
import requests

from greenbook.ai import AIResult, BaseAIClient, HTTPAIClient, InsightService, OfflineAIClient, build_ai_client
from greenbook.analysis.scoring import INSUFFICIENT_DATA
from greenbook.config import Settings
from greenbook.data import InMemoryStore
from greenbook.access import AccessAggregator
from greenbook.exceptions import ConfigError, DataSourceError


REMOTE_REPORT = {
    "trends": [{"category": "Fires", "description": "Calls for fire were fast.", "frequency": 3, "severity": "High"}],
    "frictionPoints": [{"category": "Sustainment", "description": "Water ran short.", "impact": "Medium"}],
    "recommendations": [{"category": "Fires", "description": "Keep the FO drills.", "priority": "Low"}],
}


class FailingAIClient(BaseAIClient):
    def generate(self, prompt: str, context: str) -> AIResult:
        raise RuntimeError("fail")


class StaticAIClient(BaseAIClient):
    def __init__(self, content: str):
        self.content = content
        self.calls = 0

    def generate(self, prompt: str, context: str) -> AIResult:
        self.calls += 1
        return AIResult(content=self.content, source="remote")


@pytest.fixture
def sample_aggregator(sample_snapshot):
    return AccessAggregator(store=InMemoryStore.from_file(sample_snapshot))


def test_insight_offline_is_deterministic(sample_aggregator):
    svc = InsightService(aggregator=sample_aggregator, ai_client=OfflineAIClient())
    result = svc.generate_for_user(1)
    assert result.source == "deterministic"
    assert result.cached is False
    assert INSUFFICIENT_DATA not in {t.category for t in result.report.trends}


def test_insight_fallback_on_failure(sample_aggregator):
    svc = InsightService(aggregator=sample_aggregator, ai_client=FailingAIClient())
    first = svc.generate_for_user(1)
    assert first.source == "fallback"
    assert first.cached is False
    assert first.report == svc.engine.analyze(sample_aggregator.get_accessible_aars(1))


def test_insight_remote_then_cache(sample_aggregator):
    client = StaticAIClient(json.dumps(REMOTE_REPORT))
    svc = InsightService(aggregator=sample_aggregator, ai_client=client)

    first = svc.generate_for_user(1)
    assert first.source == "remote"
    assert first.report.friction_points[0].category == "Sustainment"

    second = svc.generate_for_user(1)
    assert second.source == "cache"
    assert second.cached is True
    assert second.report == first.report
    assert client.calls == 1


def test_expired_cache_calls_remote_again(sample_aggregator):
    client = StaticAIClient(json.dumps(REMOTE_REPORT))
    svc = InsightService(aggregator=sample_aggregator, ai_client=client, cache_ttl_minutes=-1)
    svc.generate_for_user(1)
    assert svc.generate_for_user(1).source == "remote"
    assert client.calls == 2


def test_expired_entries_pruned_on_insert(sample_aggregator):
    client = StaticAIClient(json.dumps(REMOTE_REPORT))
    svc = InsightService(aggregator=sample_aggregator, ai_client=client, cache_ttl_minutes=-1)
    aars = sample_aggregator.get_accessible_aars(1)
    svc.generate(aars)
    svc.generate(list(reversed(aars)))
    assert len(svc._cache) == 1


def test_invalid_remote_payload_falls_back(sample_aggregator):
    svc = InsightService(aggregator=sample_aggregator, ai_client=StaticAIClient("Trends: radios were good"))
    assert svc.generate_for_user(1).source == "fallback"

    svc = InsightService(aggregator=sample_aggregator, ai_client=StaticAIClient('{"trends": "many"}'))
    assert svc.generate_for_user(1).source == "fallback"


def test_insufficient_data_never_goes_remote(sample_aggregator):
    client = StaticAIClient(json.dumps(REMOTE_REPORT))
    svc = InsightService(aggregator=sample_aggregator, ai_client=client)
    # soldier sees only the two AARs of the live fire
    result = svc.generate_for_user(4)
    assert result.source == "deterministic"
    assert result.report.trends[0].category == INSUFFICIENT_DATA
    assert result.report.trends[0].frequency == 2
    assert client.calls == 0


def test_event_report(sample_aggregator):
    svc = InsightService(aggregator=sample_aggregator)
    result = svc.generate_for_event(1)
    assert result.report.trends[0].frequency == 2
    payload = result.to_dict()
    assert set(payload["report"]) == {"trends", "frictionPoints", "recommendations"}


def test_build_ai_client():
    assert isinstance(build_ai_client(Settings()), OfflineAIClient)

    settings = Settings(ai={"enabled": True, "provider": "http", "base_url": "http://llm.local/v1/chat"})
    assert isinstance(build_ai_client(settings), HTTPAIClient)

    with pytest.raises(ConfigError):
        build_ai_client(Settings(ai={"enabled": True, "provider": "http"}))
    with pytest.raises(ConfigError):
        build_ai_client(Settings(ai={"enabled": True, "provider": "carrier-pigeon"}))


def test_offline_client_refuses():
    with pytest.raises(DataSourceError):
        OfflineAIClient().generate("prompt", "context")


class _Response:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


def test_http_client_reads_chat_completion(monkeypatch):
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, payload=json, headers=headers)
        return _Response(200, {"choices": [{"message": {"content": "{}"}}]})

    monkeypatch.setattr(requests, "post", fake_post)
    client = HTTPAIClient(base_url="http://llm.local/v1/chat", api_key="secret", model="test-model")
    result = client.generate("prompt", "context")

    assert result.content == "{}"
    assert result.source == "remote"
    assert sent["headers"]["Authorization"] == "Bearer secret"
    assert sent["payload"]["model"] == "test-model"
    assert sent["payload"]["messages"][1]["content"] == "prompt\n\ncontext"


@pytest.mark.parametrize(
    "response",
    [_Response(429), _Response(500), _Response(200), _Response(200, {"choices": []}), _Response(200, {"content": ""})],
)
def test_http_client_errors(monkeypatch, response):
    monkeypatch.setattr(requests, "post", lambda *args, **kwargs: response)
    client = HTTPAIClient(base_url="http://llm.local/v1/chat", api_key=None, model="test-model")
    with pytest.raises(DataSourceError):
        client.generate("prompt", "context")


def test_http_client_unreachable(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", boom)
    client = HTTPAIClient(base_url="http://llm.local/v1/chat", api_key=None, model="test-model")
    with pytest.raises(DataSourceError):
        client.generate("prompt", "context")
