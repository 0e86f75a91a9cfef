"""Classification tables for the annotator.

Intent and emotion rules live here as plain data so they can be tuned
without touching the classifier code. Order matters: intents are declared
in tie-break order and sub-intent rules are tried top to bottom.
"""

# ── Intents ──────────────────────────────────────────────────────────────
# Each entry: label, patterns (any hit marks the label), sub_intents (first is
# the default), sub_rules ((pattern, sub_intent) tried in order before default).

INTENT_TABLE = [
    {
        "label": "greeting",
        "patterns": [r"^(hi|hello|hey|namaste|good morning|good afternoon|good evening|hii+|yo|sup|kya hal|kaise ho|kem cho)"],
        "sub_intents": ["morning_greeting", "casual_hi", "formal_greeting"],
        "sub_rules": [
            (r"morning|good morning", "morning_greeting"),
            (r"namaste|sir|madam", "formal_greeting"),
            (r".", "casual_hi"),
        ],
    },
    {
        "label": "farewell",
        "patterns": [r"^(bye|goodbye|see you|cya|goodnight|night|chalo|chal|tata|alvida)"],
        "sub_intents": ["casual_bye", "goodnight", "formal_bye"],
    },
    {
        "label": "question",
        "patterns": [
            r"\?$",
            r"^(what|how|why|when|where|who|which|can you|could you|tell me|explain|kya|kaise|kyun|kab|kaha|kaun)",
        ],
        "sub_intents": ["factual", "opinion", "how_to", "philosophical"],
        "sub_rules": [
            (r"how to|kaise|steps|guide", "how_to"),
            (r"what do you think|opinion|views", "opinion"),
            (r"why|kyun|reason", "philosophical"),
            (r".", "factual"),
        ],
    },
    {
        "label": "about_inquiry",
        "patterns": [r"(who is|who's|about|tell me about|introduce|manthan kon|kaun|apna intro)"],
        "sub_intents": ["personal_info", "work_info", "general"],
    },
    {
        "label": "work_inquiry",
        "patterns": [r"(work|job|company|career|profession|kya karte|kaam|developer|engineer|coding|role)"],
        "sub_intents": ["current_role", "skills", "experience"],
    },
    {
        "label": "tech_inquiry",
        "patterns": [r"(tech|stack|technology|skills|coding|language|react|python|javascript|hadoop|spark)"],
        "sub_intents": ["tech_stack", "learning", "opinion"],
    },
    {
        "label": "contact_inquiry",
        "patterns": [r"(contact|email|phone|reach|social|youtube|instagram|twitter|linkedin|number)"],
        "sub_intents": ["social_media", "direct_contact", "professional"],
    },
    {
        "label": "collaboration",
        "patterns": [r"(collaborate|collab|project|work together|partner|opportunity|hire|freelance|job offer)"],
        "sub_intents": ["project", "hiring", "partnership"],
    },
    {
        "label": "human_request",
        "patterns": [r"(speak|talk|call|chat with manthan|connect me|reach manthan|manthan se baat|real manthan)"],
        "sub_intents": ["urgent", "casual", "business"],
    },
    {
        "label": "thanks",
        "patterns": [r"(thank|thanks|dhanyawad|shukriya|appreciate|awesome|great|nice|perfect)"],
        "sub_intents": ["casual_thanks", "appreciation"],
    },
    {
        "label": "birthday",
        "patterns": [r"(happy birthday|hbd|many many happy returns|janam din|birthday)"],
        "sub_intents": ["wishing", "asking_date"],
    },
    {
        "label": "festival",
        "patterns": [r"(happy|shubhechha|mubarak).*(diwali|holi|eid|christmas|new year|navratri|festival|sankranti|ganesh|dussehra)"],
        "sub_intents": ["wishing", "asking_about"],
    },
    {
        "label": "opinion",
        "patterns": [r"(what do you think|opinion|views|thoughts|acha lagta|pasand|favorite|best|worst)"],
        "sub_intents": ["tech_opinion", "life_opinion", "recommendation"],
    },
    {
        "label": "help",
        "patterns": [r"(help|assist|support|problem|issue|error|bug|fix|solve|stuck|please help)"],
        "sub_intents": ["technical_help", "general_help", "urgent"],
        "sub_rules": [
            (r"error|bug|fix|crash|not working", "technical_help"),
            (r"urgent|asap|quickly|jaldi", "urgent"),
            (r".", "general_help"),
        ],
    },
    {
        "label": "casual",
        "patterns": [r"(kya chal|what's up|how's it going|kaise|chal kya|kya haal|batao|bolo|sunao)"],
        "sub_intents": ["small_talk", "catching_up"],
    },
    {
        "label": "challenge",
        "patterns": [r"(prove|bet|dare|challenge|wrong|galat|nonsense|bakwas|fake|fraud)"],
        "sub_intents": ["intellectual", "ego", "playful"],
        "sub_rules": [
            (r"bet|dare|prove", "playful"),
            (r"wrong|galat|fake", "ego"),
            (r".", "intellectual"),
        ],
    },
    {
        "label": "request",
        "patterns": [r"(can you|could you|please|will you|would you|karo na|kar do|bana do|send|share|show)"],
        "sub_intents": ["action", "information", "creative"],
    },
    {
        "label": "emotional",
        "patterns": [r"(sad|happy|angry|frustrated|confused|scared|excited|bored|lonely|stressed|anxious|worried|depressed|upset|annoyed)"],
        "sub_intents": ["venting", "seeking_comfort", "sharing_joy"],
        "sub_rules": [
            (r"happy|excited|great|amazing", "sharing_joy"),
            (r"sad|upset|depressed|lonely", "seeking_comfort"),
            (r".", "venting"),
        ],
    },
    {
        "label": "spam",
        "patterns": [r"\b(join|click|earn|win|lottery|prize|offer|discount|free|limited time|hurry|forward|share to)\b"],
        "sub_intents": ["marketing", "scam", "chain_message"],
    },
]

# Intents that get a specificity boost in the confidence formula
BOOSTED_INTENTS = ("greeting", "farewell", "thanks", "birthday", "festival")

CONFIDENCE_BASE = 0.5
CONFIDENCE_PER_MATCH = 0.15
CONFIDENCE_SHORT_BONUS = 0.1
CONFIDENCE_SHORT_LENGTH = 30
CONFIDENCE_SPECIFIC_BONUS = 0.1

SHORT_MESSAGE_LENGTH = 20
LONG_MESSAGE_LENGTH = 200

EMOJI_PATTERN = (
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF\u2600-\u26FF\u2700-\u27BF]"
)

# ── Emotions ─────────────────────────────────────────────────────────────
# Keyword hits score ``weight``; emoji hits score ``0.8 * weight``.

EMOTION_TABLE = {
    "happy": {
        "keywords": ["happy", "great", "amazing", "awesome", "wonderful", "fantastic", "love", "loved", "best",
                     "perfect", "excellent", "khush", "mast", "badhiya", "sahi"],
        "emojis": ["😊", "😁", "😄", "🥳", "🎉", "❤️", "💯", "🔥", "👍", "😍", "🤩", "💪"],
        "weight": 1.0,
    },
    "excited": {
        "keywords": ["excited", "cant wait", "omg", "incredible", "insane", "crazy good", "lit", "letsgoo",
                     "lets go", "fire", "epic", "zabardast"],
        "emojis": ["🔥", "🚀", "💥", "⚡", "🤯", "😱"],
        "weight": 1.2,
    },
    "sad": {
        "keywords": ["sad", "upset", "cry", "crying", "miss", "missing", "alone", "lonely", "depressed",
                     "depression", "dukhi", "rona", "akela", "hurt"],
        "emojis": ["😢", "😭", "💔", "😞", "😔", "🥺"],
        "weight": 1.5,
    },
    "frustrated": {
        "keywords": ["frustrated", "annoyed", "irritated", "stuck", "nothing works", "fed up", "tired of", "bore",
                     "pakk gaya", "thak gaya", "enough", "ugh"],
        "emojis": ["😤", "😠", "🤬", "💢"],
        "weight": 1.3,
    },
    "angry": {
        "keywords": ["angry", "mad", "furious", "stupid", "idiot", "worst", "terrible", "disgusting", "hate",
                     "bakwas", "ghatiya", "bekar"],
        "emojis": ["😡", "🤬", "💢", "👊"],
        "weight": 1.4,
    },
    "confused": {
        "keywords": ["confused", "dont understand", "what do you mean", "unclear", "lost", "samajh nahi",
                     "kya matlab", "huh", "explain", "wait what"],
        "emojis": ["🤔", "😕", "😐", "❓", "🧐"],
        "weight": 1.0,
    },
    "curious": {
        "keywords": ["curious", "interesting", "tell me more", "how", "why", "what if", "really", "seriously",
                     "sach mein", "acha", "achha"],
        "emojis": ["🤔", "👀", "💡", "🧠"],
        "weight": 0.8,
    },
    "grateful": {
        "keywords": ["thank", "thanks", "grateful", "appreciate", "means a lot", "helpful", "dhanyawad",
                     "shukriya", "bohot acha"],
        "emojis": ["🙏", "❤️", "😊", "🥰"],
        "weight": 0.9,
    },
    "anxious": {
        "keywords": ["worried", "anxious", "nervous", "scared", "fear", "panic", "tension", "stress", "stressed",
                     "dar", "pareshan"],
        "emojis": ["😰", "😨", "😱", "🥶"],
        "weight": 1.3,
    },
    "sarcastic": {
        "keywords": ["sure", "right", "okay", "whatever", "obviously", "wow genius", "no shit", "as if",
                     "haan haan"],
        "emojis": ["🙄", "😏", "🤡", "💀"],
        "weight": 1.1,
    },
    "challenging": {
        "keywords": ["prove", "bet", "wrong", "disagree", "nah", "fake", "cap", "galat", "jhooth", "nonsense",
                     "impossible"],
        "emojis": ["😤", "🤨", "👎"],
        "weight": 1.2,
    },
    "neutral": {
        "keywords": [],
        "emojis": [],
        "weight": 0.3,
    },
}

# (pattern, bonus) pairs added on top of keyword scores
FRUSTRATION_BONUSES = [
    (r"!{2,}", 0.5),
    (r"\?{2,}", 0.5),
]
CAPS_WORD_BONUS = 1.0
CAPS_WORD_MIN_LENGTH = 3

EXCITEMENT_BONUSES = [
    (r"soo+|veryy+|amazingg+|omgg+", 0.7),
]
EXCITEMENT_EXCLAMATION_BONUS = 0.5
EXCITEMENT_EMOJI_BONUS = 0.5
EXCITEMENT_EMOJI_THRESHOLD = 3
EXCITEMENT_EMOJI_PATTERN = "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF]"

SADNESS_BONUSES = [
    (r"i (feel|am feeling|am) (so )?(sad|low|down|broken)", 1.5),
    (r"nothing (works|matters|is going)", 1.0),
    (r"i (cant|can't|cannot) (take|handle|bear)", 1.2),
]

INTENSITY_HIGH = 3.0
INTENSITY_MEDIUM = 1.5

# Response-tone hints the chat prompt uses per emotion
TONE_GUIDANCE = {
    "happy": "match their energy",
    "excited": "enthusiastic, match energy",
    "sad": "empathetic, supportive, gentle",
    "frustrated": "patient, understanding, helpful",
    "angry": "calm, grounded, non-defensive",
    "confused": "clear, explanatory, patient",
    "curious": "informative, engaging, knowledgeable",
    "grateful": "warm, humble, friendly",
    "anxious": "reassuring, calm, supportive",
    "sarcastic": "witty, confident, playful",
    "challenging": "confident, calm, factual",
    "neutral": "natural, balanced",
}

# ── Language ─────────────────────────────────────────────────────────────

DEVANAGARI_PATTERN = r"[\u0900-\u097F]"

HINGLISH_PATTERN = (
    r"\b(kya|kaise|kyun|hai|hain|ho|nahi|bhai|yaar|bro|matlab|acha|theek|chal|kar|raha|wala|bol|sun|dekh|mein|"
    r"tum|apna|uska|mera|tera)\b"
)
