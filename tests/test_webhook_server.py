from fastapi.testclient import TestClient

from persona.channels import MetaWhatsAppChannel
from persona.core.analytics import Analytics
from persona.utils.webhook_server import WebhookServer


class RecordingPipeline:
    def __init__(self):
        self.submitted = []

    async def submit(self, envelope):
        self.submitted.append(envelope)


def client_for(channel=None, clock=None):
    analytics = Analytics(clock=clock) if clock else Analytics()
    analytics.record("u1", "greeting", "chat", 900)
    return TestClient(WebhookServer(analytics, channel=channel).app)


def test_health():
    response = client_for().get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_analytics_snapshot(clock):
    data = client_for(clock=clock).get("/api/analytics").json()
    assert data["total_processed"] == 1
    assert data["handler_usage"] == [{"handler": "chat", "count": 1}]
    assert data["hourly_messages"][14] == 1


def test_verification_endpoint():
    client = client_for(MetaWhatsAppChannel("token", "15550001111", "verify-me"))
    ok = client.get("/whatsapp/webhook", params={
        "hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "1158201444",
    })
    assert ok.status_code == 200
    assert ok.text == "1158201444"

    bad = client.get("/whatsapp/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "x"})
    assert bad.status_code == 403


def test_webhook_without_channel():
    client = client_for()
    assert client.get("/whatsapp/webhook").status_code == 404
    assert client.post("/whatsapp/webhook", json={}).json()["ok"] is False


def test_webhook_post_queues_envelopes():
    pipeline = RecordingPipeline()
    client = client_for(MetaWhatsAppChannel("token", "15550001111", "verify-me", pipeline=pipeline))
    body = {"entry": [{"changes": [{"value": {"messages": [
        {"id": "wamid.1", "from": "15557654321", "type": "text", "text": {"body": "hey"}},
        {"id": "wamid.2", "from": "15557654321", "type": "sticker", "sticker": {}},
    ]}}]}]}
    response = client.post("/whatsapp/webhook", json=body)
    assert response.json() == {"ok": True, "queued": 1}
    assert pipeline.submitted[0].text == "hey"
