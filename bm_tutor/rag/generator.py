"""
Generator - Talks to the Ollama LLM.

This module handles the generation part of RAG:
1. OllamaCompletion: the completion service every generator uses,
   optionally constrained to a JSON schema (structured outputs)
2. TutorReplyGenerator: builds a tutoring prompt from retrieved
   context, year level and language mode, and returns the reply

Key Concept:
This is the "AG" in RAG - Augmented Generation!
We "augment" the LLM's knowledge with retrieved syllabus notes.
"""

from dataclasses import dataclass, field

import ollama

from bm_tutor.collaborators import CompletionService
from bm_tutor.config import (
    GENERATION_TEMPERATURE,
    LANGUAGE_MODES,
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
    TUTOR_BASE_PROMPT,
    TUTOR_FALLBACK_REPLY,
    TUTOR_LANGUAGE_RULES,
    TUTOR_PROMPT_TEMPLATE,
    TUTOR_STYLE_RULES,
)
from bm_tutor.embeddings.vector_store import RetrievalResult
from bm_tutor.exceptions import UpstreamFailure, ValidationError
from bm_tutor.logging_utils import get_logger
from bm_tutor.rag.retriever import format_context

logger = get_logger(__name__)


class OllamaCompletion:
    """
    Completion service backed by an Ollama server.

    Example:
        llm = OllamaCompletion()
        text = llm.complete([{"role": "user", "content": "Hai!"}])

        # Structured output
        raw_json = llm.complete(messages, response_schema=Quiz.response_schema())
    """

    def __init__(
        self,
        model: str | None = None,
        host: str | None = None,
        temperature: float = GENERATION_TEMPERATURE,
        client: ollama.Client | None = None,
    ):
        """
        Initialize the completion service.

        Args:
            model: Ollama model name (uses config default if not provided)
            host: Ollama server URL (uses config default if not provided)
            temperature: Sampling temperature
            client: Existing ollama.Client (host is ignored)
        """
        self.model = model or OLLAMA_MODEL
        self.temperature = temperature
        self._client = client or ollama.Client(host=host or OLLAMA_BASE_URL)

    def complete(self, messages: list[dict], response_schema: dict | None = None) -> str:
        """
        Run one chat completion.

        Raises:
            UpstreamFailure: If Ollama cannot be reached or errors out
        """
        kwargs = {
            "model": self.model,
            "messages": messages,
            "options": {"temperature": self.temperature},
        }
        if response_schema is not None:
            kwargs["format"] = response_schema

        try:
            response = self._client.chat(**kwargs)
        except Exception as e:
            raise UpstreamFailure(
                f"{e} (is Ollama running and is '{self.model}' pulled?)",
                service="completion",
            ) from e
        return response["message"]["content"] or ""


def build_tutor_system_prompt(year: int, language_mode: str, topic_key: str | None = None) -> str:
    """Assemble the tutor system prompt for a year level and language mode."""
    if year <= 3:
        level_rule = (
            "Guna ayat pendek, contoh mudah, dan tanya soalan kecil untuk pastikan faham."
        )
    else:
        level_rule = (
            "Guna penerangan lebih teratur. Tekankan kata kunci dan langkah menjawab."
        )

    if topic_key:
        topic_rule = f'Fokuskan penerangan kepada topik "{topic_key}".'
    else:
        topic_rule = "Jika tiada topik khusus dipilih, ikut konteks yang paling berkaitan."

    return "\n".join([
        TUTOR_BASE_PROMPT.format(year=year),
        TUTOR_LANGUAGE_RULES[language_mode],
        level_rule,
        topic_rule,
        TUTOR_STYLE_RULES,
    ])


@dataclass
class TutorReply:
    """A tutoring reply and the chunks it was grounded on."""
    reply: str
    sources: list[RetrievalResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "reply": self.reply,
            "sources": [
                {"source": s.source, "similarity": s.similarity} for s in self.sources
            ],
        }


class TutorReplyGenerator:
    """
    Generates tutoring replies grounded on retrieved context.

    Example:
        generator = TutorReplyGenerator(OllamaCompletion())
        reply = generator.reply("Apa itu kata adjektif?", context, year=3)
    """

    def __init__(self, completion: CompletionService):
        self.completion = completion

    def reply(
        self,
        message: str,
        context: list[RetrievalResult],
        year: int,
        language_mode: str = "BM_EN",
        topic_key: str | None = None,
    ) -> TutorReply:
        """
        Generate a reply to a pupil's message.

        Raises:
            ValidationError: If language_mode is unknown
            UpstreamFailure: If the completion call fails
        """
        if language_mode not in LANGUAGE_MODES:
            raise ValidationError(
                f"language_mode must be one of {', '.join(LANGUAGE_MODES)}"
            )

        system = build_tutor_system_prompt(year, language_mode, topic_key)
        prompt = TUTOR_PROMPT_TEMPLATE.format(
            context=format_context(context),
            message=message,
        )

        text = self.completion.complete([
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]).strip()

        if not text:
            logger.warning("Empty tutor reply from model, using fallback")
            text = TUTOR_FALLBACK_REPLY
        return TutorReply(reply=text, sources=context)
