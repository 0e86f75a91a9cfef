import asyncio

from persona.core.delivery import DIRECT_FAILURE_TEXT, GROUP_FAILURE_TEXT, Delivery
from persona.core.types import DeliveryPart, DeliveryPlan

from conftest import FakeTransport


def recording_sleep(log):
    async def sleep(seconds):
        log.append(seconds)
    return sleep


def plan(*parts):
    return DeliveryPlan(parts=list(parts))


def test_parts_go_out_in_order_with_presence(transport):
    slept = []
    delivery = Delivery(transport, sleep=recording_sleep(slept))
    sent = asyncio.run(delivery.deliver("u1", plan(DeliveryPart("first", 1200), DeliveryPart("second", 800))))

    assert [p.text for p in sent] == ["first", "second"]
    assert transport.texts("u1") == ["first", "second"]
    assert slept == [1.2, 0.8]
    assert [p[1] for p in transport.presence] == ["composing", "composing", "paused"]


def test_image_and_audio_ride_with_the_part(transport):
    part = DeliveryPart("look at this", 600, image=b"png", image_mime="image/png", audio=b"mp3", audio_mime="audio/mpeg")
    asyncio.run(Delivery(transport, sleep=recording_sleep([])).deliver("u1", plan(part)))
    assert transport.sent == [("image", "u1", "look at this"), ("audio", "u1", 3)]


def test_failure_sends_direct_fallback_text():
    transport = FakeTransport(fail_sends=1)
    sent = asyncio.run(Delivery(transport, sleep=recording_sleep([])).deliver("u1", plan(DeliveryPart("hey", 600))))
    assert sent == []
    assert transport.texts("u1") == [DIRECT_FAILURE_TEXT]


def test_failure_in_group_uses_group_text():
    transport = FakeTransport(fail_sends=1)
    delivery = Delivery(transport, sleep=recording_sleep([]))
    asyncio.run(delivery.deliver("g1", plan(DeliveryPart("hey", 600)), is_group=True))
    assert transport.texts("g1") == [GROUP_FAILURE_TEXT]


def test_fallback_failure_abandons_quietly():
    transport = FakeTransport(fail_sends=2)
    sent = asyncio.run(Delivery(transport, sleep=recording_sleep([])).deliver("u1", plan(DeliveryPart("hey", 600))))
    assert sent == []
    assert transport.sent == []


def test_later_part_failure_keeps_what_was_sent():
    transport = FakeTransport(fail_at=1)
    delivery = Delivery(transport, sleep=recording_sleep([]))
    first, second = DeliveryPart("first part here", 600), DeliveryPart("second part here", 800)
    sent = asyncio.run(delivery.deliver("u1", plan(first, second)))

    assert sent == [first]
    assert transport.texts("u1") == ["first part here"]
    assert transport.presence[-1] == ("u1", "paused")


def test_audio_failure_after_text_is_not_a_failed_reply():
    transport = FakeTransport(fail_at=1)
    part = DeliveryPart("listen", 600, audio=b"mp3", audio_mime="audio/mpeg")
    sent = asyncio.run(Delivery(transport, sleep=recording_sleep([])).deliver("u1", plan(part)))
    assert sent == [part]
    assert transport.texts("u1") == ["listen"]
