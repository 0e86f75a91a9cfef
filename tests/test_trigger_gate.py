from persona.core.trigger_gate import TriggerGate, strip_bot_mention
from persona.core.types import Envelope


def gate():
    return TriggerGate("bot-1", ["manthan", "@manthan", "@bot"])


def test_direct_messages_always_pass():
    env = Envelope(sender_id="u1", text="anyone up for coffee?")
    assert gate().effective_text(env) == "anyone up for coffee?"


def test_group_without_trigger_is_dropped():
    env = Envelope(sender_id="g1", text="anyone up for coffee?", is_group=True, author_id="u1")
    assert not gate().is_triggered(env)
    assert gate().effective_text(env) is None


def test_group_mention_id_triggers():
    env = Envelope(sender_id="g1", text="what do you think?", is_group=True, mentioned_ids=["bot-1"])
    assert gate().effective_text(env) == "what do you think?"


def test_group_quote_of_bot_triggers():
    env = Envelope(
        sender_id="g1", text="lol true", is_group=True,
        quoted_text="chess > everything", quoted_author_id="bot-1",
    )
    assert gate().is_triggered(env)
    # Replying to the bot keeps the user's own words
    assert gate().effective_text(env) == "lol true"


def test_group_name_tag_triggers_case_insensitively():
    env = Envelope(sender_id="g1", text="MANTHAN you coming tonight?", is_group=True)
    assert gate().is_triggered(env)


def test_image_caption_counts_as_text():
    env = Envelope(sender_id="g1", text="@bot what is this", is_group=True, image=b"\xff\xd8data")
    assert gate().effective_text(env) == "what is this"


def test_answer_this_redirects_to_quoted_text():
    env = Envelope(
        sender_id="g1", text="@bot answer this", is_group=True,
        quoted_text="what is 7*8?", quoted_author_id="u2",
    )
    assert gate().effective_text(env) == "what is 7*8?"


def test_answer_word_inside_a_longer_question_does_not_redirect():
    env = Envelope(
        sender_id="g1", text="@bot why did nobody answer my question about the trip plans yesterday",
        is_group=True, quoted_text="trip on saturday?", quoted_author_id="u2",
    )
    assert gate().effective_text(env).startswith("why did nobody")


def test_strip_bot_mention_only_leading():
    assert strip_bot_mention("@BOT hello") == "hello"
    assert strip_bot_mention("hello @bot") == "hello @bot"
