from persona.core.analytics import Analytics


def test_record_and_snapshot(clock):
    analytics = Analytics(clock=clock)
    analytics.record("u1", "greeting", "chat", 800)
    analytics.record("u1", "question", "search", 1200)
    analytics.record("u2", None, "auto_reply", None)
    clock.advance(90)

    data = analytics.snapshot()
    assert data["total_processed"] == 3
    assert data["avg_response_ms"] == 1000
    assert data["hourly_messages"][14] == 3
    assert data["top_senders"][0] == {"id": "u1", "count": 2}
    assert {"intent": "greeting", "count": 1} in data["top_intents"]
    assert data["uptime_seconds"] == 90
    assert data["current_hour"] == 14


def test_day_rollover_archives_hourly_counts(clock):
    analytics = Analytics(clock=clock)
    analytics.record("u1", "greeting", "chat", 500)
    analytics.record("u2", "greeting", "chat", 500)

    clock.advance(24 * 3600)
    analytics.record("u1", "thanks", "chat", 500)

    assert analytics.daily[-1] == {"date": "2024-06-12", "count": 2}
    assert sum(analytics.hourly) == 1
    assert analytics.total_processed == 3


def test_summary_text(clock):
    analytics = Analytics(clock=clock)
    assert "none yet" in analytics.summary_text()

    analytics.record("u1", "greeting", "chat", 600)
    text = analytics.summary_text()
    assert "• Processed: 1" in text
    assert "greeting (1)" in text
    assert "• Avg response: 600ms" in text
