"""
Configuration settings for the BM Tutor application.

This file centralizes all configuration so you can easily adjust parameters.
Classes take these values as constructor defaults, so tests can override
any of them without touching this module.
"""

import os
from pathlib import Path

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Base directory (where this project lives)
BASE_DIR = Path(__file__).parent.parent

# Data storage directory
DATA_DIR = Path(os.environ.get("BM_TUTOR_DATA_DIR", BASE_DIR / "data"))

# ChromaDB storage location
CHROMA_DB_DIR = DATA_DIR / "chroma_db"

# One JSON file per quiz attempt lives here
ATTEMPTS_DIR = DATA_DIR / "attempts"

# Collection holding every ingested content chunk (all subjects and years)
CONTENT_COLLECTION = "content_chunks"

# =============================================================================
# CHUNKING CONFIGURATION
# =============================================================================

# Soft upper bound on chunk length in characters.
# A single paragraph longer than this still becomes one chunk.
CHUNK_MAX_CHARS = 900

# Ingested text shorter than this (after trimming) is rejected
MIN_INGEST_TEXT_CHARS = 10

# =============================================================================
# EMBEDDING CONFIGURATION
# =============================================================================

# Multilingual model so Bahasa Melayu text and English queries land close
EMBEDDING_MODEL = os.environ.get(
    "EMBEDDING_MODEL", "paraphrase-multilingual-MiniLM-L12-v2"
)

# =============================================================================
# OLLAMA CONFIGURATION
# =============================================================================

OLLAMA_MODEL = os.environ.get("OLLAMA_MODEL", "llama3.2")

OLLAMA_BASE_URL = os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")

# Low temperature keeps structured JSON output stable
GENERATION_TEMPERATURE = 0.3

# =============================================================================
# CURRICULUM CONFIGURATION
# =============================================================================

DEFAULT_SUBJECT = "BM"

# Primary school years (Tahun 1 - Tahun 6)
SUPPORTED_YEARS = range(1, 7)

# =============================================================================
# RAG CONFIGURATION
# =============================================================================

# Number of chunks to retrieve for context
RETRIEVAL_TOP_K = 6

# Tutor reply language modes
LANGUAGE_MODES = ("BM_EN", "BM_ONLY", "EN_ONLY")

# =============================================================================
# QUIZ CONFIGURATION
# =============================================================================

DIFFICULTIES = ("easy", "medium", "hard")

MIN_QUIZ_ITEMS = 3
MAX_QUIZ_ITEMS = 15
DEFAULT_QUIZ_ITEMS = 6

# Total generation attempts (first try + one retry)
MAX_QUIZ_ATTEMPTS = 2

# Lower-cased phrases that mark a question as depending on the passage.
# Bahasa Melayu phrasing first, English equivalents after.
PASSAGE_REFERENCE_PHRASES = (
    "berdasarkan petikan",
    "mengikut petikan",
    "menurut petikan",
    "daripada petikan",
    "dalam petikan",
    "berdasarkan cerita",
    "menurut cerita",
    "mengikut cerita",
    "based on the passage",
    "according to the passage",
    "according to the story",
    "from the passage",
)

# Question category mix requested from the model (category, share of items)
QUIZ_TYPE_MIX = (
    ("comprehension questions anchored on the passage (pemahaman)", 0.4),
    ("grammar (tatabahasa)", 0.2),
    ("idioms and proverbs (peribahasa / simpulan bahasa)", 0.2),
    ("vocabulary (kosa kata)", 0.2),
)

# Share of multiple choice items; the rest are short answers
QUIZ_MCQ_SHARE = 0.6

# =============================================================================
# GRADING CONFIGURATION
# =============================================================================

# A semantic judgment counts as correct only if the reply starts with this
GRADING_CORRECT_TOKEN = "CORRECT"

# =============================================================================
# LLM PROMPT TEMPLATES
# =============================================================================

QUIZ_SYSTEM_PROMPT = (
    "You are a careful Bahasa Melayu quiz builder for Malaysian primary school "
    "pupils. Write every question, choice, answer and explanation in Bahasa "
    "Melayu. Output JSON only, never any other text."
)

QUIZ_PROMPT_TEMPLATE = """CONTEXT (syllabus / notes):
---
{context}
---

INSTRUCTIONS:
Build a quiz for Tahun {year} (primary school, NOT Tingkatan).
Topic: {topic}
Difficulty: {difficulty}
Number of questions: {count}

Question mixture:
{type_mix}
Use about {mcq_percent}% multiple choice ("mcq", exactly 4 choices, the
answer must be one of the choices verbatim) and the rest short answer
("short", choices null).

Comprehension questions need a passage. If you write any, put the full
passage text (a short story or paragraph suited to Tahun {year}) in the
top-level "passage" field and set "requiresPassage": true on every question
that refers to it. If no question refers to a passage, set "passage" to null.

Give every item a unique "id" ("q1", "q2", ...), the correct "answer" and a
short "explanation".

Output valid JSON matching this schema:
{schema}"""

QUIZ_RETRY_TEMPLATE = """

YOUR PREVIOUS RESPONSE WAS REJECTED: {error}
Fix this in the new response. Questions that say things like "Berdasarkan
petikan" or "according to the passage" MUST have "requiresPassage": true, and
the top-level "passage" field MUST then contain the complete passage text.
Return the whole quiz again as valid JSON."""

GRADING_SYSTEM_PROMPT = "You are a fair quiz grader for primary school Bahasa Melayu."

GRADING_PROMPT_TEMPLATE = """Question: {question}
Reference answer: {correct_answer}
Pupil's answer: {user_answer}

Is the pupil's answer correct? Accept synonyms, paraphrases and answers that
mean the same thing in different words. Reject only answers that are
conceptually wrong or unrelated.
Reply with "CORRECT" or "INCORRECT" first, then " | " and one short line of
feedback in Bahasa Melayu."""

TUTOR_BASE_PROMPT = (
    "You are a Malaysian primary school tutor for Bahasa Melayu (BM).\n"
    "Pupil level: Tahun {year} primary school (NOT Tingkatan). "
    "Never use the term \"Tingkatan\".\n"
    "Follow the syllabus and notes provided (RAG context). Do not invent "
    "standards that are not in the context."
)

TUTOR_LANGUAGE_RULES = {
    "BM_ONLY": "Jawab dalam Bahasa Melayu sahaja.",
    "EN_ONLY": "Reply in English only.",
    "BM_EN": (
        "Utamakan Bahasa Melayu. Jika murid keliru, boleh jelaskan ringkas "
        "dalam English juga."
    ),
}

TUTOR_STYLE_RULES = (
    "Teaching style: ask 2-4 diagnostic questions when needed, then teach "
    "step by step, give a short exercise, and summarise.\n"
    "Do not give the final answer to a practice question straight away; give "
    "a hint first, then check the pupil's answer.\n"
    "If the context is not enough, ask the pupil or parent one clear question, "
    "or give a safe general explanation and say that it is general."
)

TUTOR_PROMPT_TEMPLATE = """CONTEXT (syllabus / notes):
{context}

PUPIL'S MESSAGE:
{message}"""

TUTOR_FALLBACK_REPLY = "Maaf, saya tak dapat jawab sekarang."
