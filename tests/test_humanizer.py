import random

from persona.core.humanizer import Humanizer
from persona.core.types import HandlerResult

from conftest import FakeClock, NOON_EPOCH

LATE_NIGHT = NOON_EPOCH - 12 * 3600  # 02:00 IST


def make(clock=None, **kwargs):
    return Humanizer(rng=random.Random(3), clock=clock or FakeClock(), **kwargs)


def test_quick_intent_hits_the_floor():
    assert make().typing_delay("hey", intent="greeting") == 600


def test_delay_scales_with_length_and_caps():
    h = make()
    assert 1280 <= h.typing_delay("x" * 1000) <= 1920
    assert h.typing_delay("x" * 10000) == 5000


def test_group_delay_is_shorter():
    direct = [make().typing_delay("x" * 1000) for _ in range(3)]
    group = [make().typing_delay("x" * 1000, is_group=True) for _ in range(3)]
    assert max(group) < min(direct)


def test_handler_time_is_subtracted_from_first_delay():
    h = make()
    plan = h.plan("x" * 1000, elapsed_ms=0)
    assert plan.parts[0].delay_ms > 1000
    plan = make().plan("x" * 1000, elapsed_ms=10_000)
    assert plan.parts[0].delay_ms == 600


def test_split_on_dash_rule_and_triple_newline():
    assert Humanizer.split_parts("hello\n---\nworld") == ["hello", "world"]
    assert Humanizer.split_parts("a\n\n\nb") == ["a", "b"]
    assert Humanizer.split_parts("a\n\nb") == ["a\n\nb"]


def test_follow_up_parts_wait_at_least_800ms():
    plan = make().plan("first bit\n---\nsecond bit")
    assert [p.text for p in plan.parts] == ["first bit", "second bit"]
    assert plan.parts[1].delay_ms == 800
    assert plan.text == "first bit\n\nsecond bit"


def test_attachments_ride_on_first_part():
    result = HandlerResult(response="look", source="vision", image=b"png", image_mime="image/png")
    plan = make().plan("look\n---\nnice right", result=result)
    assert plan.parts[0].image == b"png"
    assert plan.parts[0].image_mime == "image/png"
    assert plan.parts[1].image is None


def test_group_replies_cut_at_sentence_end():
    h = make(max_group_reply=20)
    assert h.truncate_for_group("First one. Second sentence is long.") == "First one."
    assert h.truncate_for_group("a" * 30) == "a" * 19 + "…"
    assert h.truncate_for_group("short") == "short"


def test_formal_openers_trimmed_without_casual_noise():
    out = make().humanize("Certainly! Here you go, the list is ready.", casual=False)
    assert out == "Here you go, the list is ready."


def test_late_night_calms_exclamations():
    h = make(clock=FakeClock(LATE_NIGHT))
    assert h.is_late_night()
    assert h.humanize("wow!!!", casual=False) in ("wow!", "wow.")
    assert not make().is_late_night()


def test_casual_keeps_urls_intact():
    text = "check https://Example.org/Path"
    for seed in range(20):
        out = Humanizer(rng=random.Random(seed), clock=FakeClock()).humanize(text)
        assert "https://Example.org/Path" in out
