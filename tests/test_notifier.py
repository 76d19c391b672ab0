"""
通知分发测试
"""
import json
import logging
from datetime import timedelta

import httpx

from ruleengine.models.alert import Alert, NamedAlert
from ruleengine.models.enums import AlertState
from ruleengine.models.labels import Labels
from ruleengine.services.notifier import AlertmanagerNotifier, LogNotifier, build_payload
from tests.conftest import T0


def _named(state=AlertState.FIRING) -> NamedAlert:
    alert = Alert(
        state=state,
        labels=Labels({"alertname": "HighCPU", "host": "web-1"}),
        annotations=Labels({"summary": "cpu is high"}),
        generator_url="http://localhost:3301/alerts/edit?ruleId=r1",
        receivers=["slack-ops"],
        value=91.0,
        active_at=T0,
        fired_at=T0,
        valid_until=T0 + timedelta(minutes=4),
    )
    return NamedAlert("HighCPU", alert)


class TestBuildPayload:
    def test_fields(self):
        [item] = build_payload([_named()])
        assert item["labels"] == {"alertname": "HighCPU", "host": "web-1"}
        assert item["annotations"] == {"summary": "cpu is high"}
        assert item["generatorURL"] == "http://localhost:3301/alerts/edit?ruleId=r1"
        assert item["receivers"] == ["slack-ops"]
        assert item["state"] == "firing"
        assert "startsAt" in item and "endsAt" in item


class TestAlertmanagerNotifier:
    async def test_posts_alerts(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200)

        notifier = AlertmanagerNotifier("http://am:9093/", transport=httpx.MockTransport(handler))
        assert await notifier.send([_named(), _named(AlertState.RESOLVED)]) is True
        assert captured["url"] == "http://am:9093/api/v1/alerts"
        assert [a["state"] for a in captured["body"]] == ["firing", "resolved"]

    async def test_empty_batch_skips_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        notifier = AlertmanagerNotifier("http://am:9093", transport=httpx.MockTransport(handler))
        assert await notifier.send([]) is True

    async def test_rejected(self, caplog):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="oops"))
        notifier = AlertmanagerNotifier("http://am:9093", transport=transport)
        with caplog.at_level(logging.WARNING):
            assert await notifier.send([_named()]) is False
        assert "status=500" in caplog.text

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        notifier = AlertmanagerNotifier("http://am:9093", transport=httpx.MockTransport(handler))
        assert await notifier.send([_named()]) is False


class TestLogNotifier:
    async def test_logs_each_alert(self, caplog):
        with caplog.at_level(logging.INFO):
            assert await LogNotifier().send([_named()]) is True
        assert "HighCPU" in caplog.text
