from persona.core.annotator import annotate, detect_emotion, detect_language, tone_hint
from persona.core.annotator.language import count_hinglish_words


def test_casual_greeting():
    ann = annotate("yo what's up")
    assert ann.intent == "greeting"
    assert ann.sub_intent == "casual_hi"
    assert ann.emotion == "neutral"
    assert ann.intensity == "low"
    assert ann.language == "english"
    assert ann.is_short
    assert "casual" in ann.all_intents


def test_morning_greeting_sub_intent_and_confidence():
    ann = annotate("Good morning!")
    assert ann.intent == "greeting"
    assert ann.sub_intent == "morning_greeting"
    # base + one match + short + specific
    assert abs(ann.confidence - 0.85) < 1e-9


def test_empty_text_is_total():
    ann = annotate("")
    assert ann.intent == "unknown"
    assert ann.sub_intent is None
    assert ann.emotion == "neutral"
    assert ann.language == "english"
    assert not ann.has_emoji


def test_festival_beats_emotional():
    ann = annotate("Happy Diwali bhai!")
    assert ann.intent == "festival"
    assert ann.language == "hinglish"


def test_spam_detected():
    assert annotate("Click here to win a free prize").intent == "spam"


def test_sadness_scores_high():
    emotion, intensity, scores = detect_emotion("I feel so sad, nothing works 😢")
    assert emotion == "sad"
    assert intensity == "high"
    assert scores["sad"] > scores["frustrated"]


def test_caps_bonus_uses_original_case():
    shouting, _, _ = detect_emotion("WHY IS THIS NOT WORKING!!")
    calm, _, _ = detect_emotion("why is this not working!!")
    assert shouting == "frustrated"
    assert calm != "frustrated"


def test_language_detection():
    assert detect_language("क्या हाल है") == "hindi"
    assert detect_language("kya scene hai bhai") == "hinglish"
    assert detect_language("hello there") == "english"


def test_count_hinglish_words():
    assert count_hinglish_words("kya bhai, sab theek hai?") == 4
    assert count_hinglish_words("all good here") == 0


def test_annotate_is_deterministic():
    text = "bro can you help me fix this bug?? 😤"
    assert annotate(text) == annotate(text)


def test_emoji_flag():
    assert annotate("nice 🔥").has_emoji


def test_tone_hint_falls_back_to_neutral():
    assert tone_hint("sad") == "empathetic, supportive, gentle"
    assert tone_hint("not-an-emotion") == tone_hint("neutral")
