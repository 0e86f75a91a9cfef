from persona.core.security.audit_logger import AuditLogger
from persona.core.security.safety_filter import DEFERRAL_PHRASE, PLACEHOLDER, SafetyFilter


def test_identity_leak_is_stripped():
    out = SafetyFilter().filter("Haha I am an AI so I can't ride bikes", "do you ride?")
    assert out == "Haha so I can't ride bikes"


def test_provider_names_are_stripped():
    out = SafetyFilter().filter("I was trained by OpenAI, anyway chess is fun", "hey")
    assert "openai" not in out.lower()
    assert "chess is fun" in out


def test_clean_response_passes_through_untouched():
    text = "lol same   bro"
    assert SafetyFilter().filter(text, "bro i'm tired") == text


def test_personal_data_redacted_outside_urls():
    f = SafetyFilter()
    assert f.filter("mail me at riya@example.com", "hey") == "mail me at [REDACTED]"
    assert f.filter("call 98765432101 later", "hey") == "call [REDACTED] later"
    url = "see https://example.org/track/12345678901 ok"
    assert f.filter(url, "link?") == url


def test_commitment_on_sensitive_topic_is_deferred():
    out = SafetyFilter().filter("Sure I'll be there, confirmed!", "can we schedule a meeting tomorrow?")
    assert out == DEFERRAL_PHRASE


def test_commitment_without_sensitive_topic_is_kept():
    out = SafetyFilter().filter("I promise it's a great movie", "is dune good?")
    assert out == "I promise it's a great movie"


def test_fully_redacted_response_becomes_placeholder():
    assert SafetyFilter().filter("As an AI", "who are you") == PLACEHOLDER
    assert SafetyFilter().filter("", "hey") == PLACEHOLDER


def test_hits_are_audited(tmp_path):
    audit = AuditLogger(str(tmp_path / "audit.jsonl"))
    SafetyFilter(audit).filter("As an AI I think so", "hm?", sender_id="u1")
    events = audit.get_recent_events()
    assert len(events) == 1
    assert events[0]["hit_type"] == "identity_redaction"
    assert events[0]["sender_id"] == "u1"
    assert audit.get_safety_summary()["safety_hits"] == 1


def test_nested_identity_phrases_do_not_reassemble():
    f = SafetyFilter()
    out = f.filter("As an As an AI AI, I love chess", "hey")
    assert "as an ai" not in out.lower()
    assert out.endswith("I love chess")

    out = f.filter("I am I am an AI an AI who plays chess", "hey")
    assert out == "who plays chess"


def test_technical_removal_cannot_expose_identity_phrase():
    out = SafetyFilter().filter("ok so I am server error an AI lol", "hey")
    assert "an ai" not in out.lower()
    assert "server error" not in out.lower()
