import pytest

from persona.core.annotator import annotate
from persona.core.router import is_youtube_request, route
from persona.core.types import Annotations, HandlerTag


@pytest.mark.parametrize("text,expected", [
    ("add task buy milk", HandlerTag.TODO),
    ("show tasks", HandlerTag.TODO),
    ("remind me in 10 min to call mom", HandlerTag.REMINDER),
    ("translate good night to french", HandlerTag.TRANSLATE),
    ("thank you ko hindi mein translate karo", HandlerTag.TRANSLATE),
    ("can you summarize our chat", HandlerTag.SUMMARIZE),
    ("recommend a video on python", HandlerTag.YOUTUBE),
    ("check this https://example.org/x", HandlerTag.LINK),
    ("search best ergonomic keyboards 2024", HandlerTag.SEARCH),
    ("what is 7*8?", HandlerTag.CHAT),
])
def test_explicit_triggers(text, expected):
    assert route(annotate(text), text) == expected


def test_spam_goes_to_social_first():
    assert route(Annotations(intent="spam"), "add task click to win") == HandlerTag.SOCIAL


def test_first_rule_wins():
    # Todo is checked before reminder, link before search
    assert route(Annotations(), "remind me to add task") == HandlerTag.TODO
    assert route(Annotations(), "search https://example.org") == HandlerTag.LINK


@pytest.mark.parametrize("intent", ["birthday", "festival"])
def test_social_intents(intent):
    assert route(Annotations(intent=intent), "hbd!!") == HandlerTag.SOCIAL


@pytest.mark.parametrize("intent", ["about_inquiry", "work_inquiry", "tech_inquiry", "contact_inquiry"])
def test_knowledge_intents(intent):
    assert route(Annotations(intent=intent), "tell me more") == HandlerTag.KNOWLEDGE


def test_youtube_self_reference_is_not_a_video_request():
    assert not is_youtube_request("what's your youtube channel?")
    assert is_youtube_request("any good yt videos for chess?")


def test_route_is_pure():
    ann = annotate("search python asyncio")
    assert route(ann, "search python asyncio") == route(ann, "search python asyncio") == HandlerTag.SEARCH
