"""Shared fixtures for the BM Tutor test suite."""

import json
import re
import zlib
from collections import deque

import numpy as np
import pytest
from fastapi.testclient import TestClient

from bm_tutor.embeddings.vector_store import ContentChunk, RetrievalResult
from bm_tutor.exceptions import UpstreamFailure
from bm_tutor.interfaces.web_app import create_app
from bm_tutor.pipeline import TutorPipeline
from bm_tutor.quiz.models import Quiz, QuizAttempt

# ---------------------------------------------------------------------------
# Fake collaborators that never touch sentence-transformers, ChromaDB or Ollama
# ---------------------------------------------------------------------------

_WORD = re.compile(r"\w+", re.UNICODE)


class FakeEmbedder:
    """Deterministic bag-of-words embedder (hashed into a small vector)."""

    def __init__(self, dimension: int = 64, fail_on: tuple[str, ...] = ()):
        self.dimension = dimension
        self.fail_on = fail_on
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise UpstreamFailure("embedding model unavailable", service="embedding")

        vec = np.zeros(self.dimension)
        for word in _WORD.findall(text.lower()):
            vec[zlib.crc32(word.encode("utf-8")) % self.dimension] += 1.0
        norm = np.linalg.norm(vec)
        return (vec / norm if norm else vec).tolist()


class InMemoryContentStore:
    """Content store keeping chunks in a list; cosine similarity via numpy."""

    def __init__(self, fail_on_insert: tuple[str, ...] = ()):
        self.rows: list[tuple[str, ContentChunk]] = []
        self.fail_on_insert = fail_on_insert

    def insert(self, chunk: ContentChunk) -> str:
        if any(marker in chunk.content for marker in self.fail_on_insert):
            raise UpstreamFailure("insert rejected", service="vector store")
        chunk_id = f"chunk-{len(self.rows)}"
        self.rows.append((chunk_id, chunk))
        return chunk_id

    def similarity_search(self, query_embedding, subject, year, limit):
        query = np.asarray(query_embedding)
        results = []
        for chunk_id, chunk in self.rows:
            if chunk.subject != subject or chunk.year != year:
                continue
            vec = np.asarray(chunk.embedding)
            denom = np.linalg.norm(query) * np.linalg.norm(vec)
            similarity = float(query @ vec / denom) if denom else 0.0
            results.append(RetrievalResult(
                id=chunk_id,
                content=chunk.content,
                source=chunk.source,
                similarity=max(0.0, min(1.0, similarity)),
            ))
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[:limit]

    def list_sources(self, subject, year):
        return [c.source for _, c in self.rows if c.subject == subject and c.year == year]


class ScriptedCompletion:
    """
    Completion service returning queued replies in order.

    A queued Exception is raised instead of returned. When a responder
    is given it is used once the queue is empty.
    """

    def __init__(self, replies=(), responder=None):
        self.replies = deque(replies)
        self.responder = responder
        self.calls: list[dict] = []

    def queue(self, *replies):
        self.replies.extend(replies)

    def complete(self, messages, response_schema=None):
        self.calls.append({"messages": messages, "response_schema": response_schema})
        if self.replies:
            reply = self.replies.popleft()
        elif self.responder is not None:
            reply = self.responder(messages, response_schema)
        else:
            raise AssertionError("ScriptedCompletion ran out of replies")
        if isinstance(reply, Exception):
            raise reply
        return reply


class InMemoryAttemptStore:
    """Attempt store backed by a dict."""

    def __init__(self):
        self.attempts: dict[str, QuizAttempt] = {}
        self.update_calls = 0

    def insert(self, attempt):
        self.attempts[attempt.id] = attempt
        return attempt.id

    def get_by_id(self, attempt_id):
        return self.attempts.get(attempt_id)

    def update(self, attempt_id, **fields):
        self.update_calls += 1
        self.attempts[attempt_id] = self.attempts[attempt_id].model_copy(update=fields)

    def list_recent(self, limit=30):
        ordered = sorted(self.attempts.values(), key=lambda a: a.created_at, reverse=True)
        return ordered[:limit]


# ---------------------------------------------------------------------------
# Quiz builders
# ---------------------------------------------------------------------------


def make_item(item_id="q1", type="mcq", question="Apakah lawan kata 'kecil'?",
              answer="besar", choices=None, requires_passage=False,
              explanation="Lawan kata kecil ialah besar."):
    if type == "mcq" and choices is None:
        choices = ["besar", "pendek", "tinggi", "lebar"]
    return {
        "id": item_id,
        "type": type,
        "question": question,
        "choices": choices,
        "answer": answer,
        "explanation": explanation,
        "requiresPassage": requires_passage,
    }


def make_quiz_dict(items=None, passage=None, title="Kuiz Kata Berlawan"):
    return {
        "title": title,
        "subject": "BM",
        "year": 3,
        "passage": passage,
        "items": items if items is not None else [make_item()],
    }


def make_quiz_json(items=None, passage=None, **kwargs) -> str:
    return json.dumps(make_quiz_dict(items=items, passage=passage, **kwargs))


def make_quiz(items=None, passage=None) -> Quiz:
    return Quiz.model_validate(make_quiz_dict(items=items, passage=passage))


def make_attempt(attempt_id="a" * 32, items=None) -> QuizAttempt:
    quiz = make_quiz(items=items)
    return QuizAttempt(
        id=attempt_id,
        child_id="aina",
        subject="BM",
        year=3,
        topic="Kata berlawan",
        total=len(quiz.items),
        payload=quiz,
    )


FIVE_ITEM_QUIZ = [
    make_item("q1", "mcq", "Apakah lawan kata 'kecil'?", "besar"),
    make_item("q2", "mcq", "Apakah lawan kata 'tinggi'?", "rendah",
              choices=["rendah", "besar", "lebar", "panjang"]),
    make_item("q3", "mcq", "Apakah lawan kata 'panas'?", "sejuk",
              choices=["sejuk", "besar", "basah", "kering"]),
    make_item("q4", "short", "Apakah maksud 'rajin'?", "suka bekerja kuat", choices=None),
    make_item("q5", "short", "Apakah maksud 'gembira'?", "berasa suka hati", choices=None),
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def embedder():
    return FakeEmbedder()


@pytest.fixture()
def content_store():
    return InMemoryContentStore()


@pytest.fixture()
def completion():
    return ScriptedCompletion()


@pytest.fixture()
def attempt_store():
    return InMemoryAttemptStore()


@pytest.fixture()
def pipeline(embedder, content_store, completion, attempt_store):
    """Pipeline wired entirely from fakes."""
    return TutorPipeline(
        embedder=embedder,
        store=content_store,
        completion=completion,
        attempts=attempt_store,
    )


@pytest.fixture()
def sample_notes():
    """Three topics' worth of notes, one paragraph each."""
    return {
        "Textbook Part 1": "Kata nama am ialah nama umum bagi benda, tempat dan haiwan.",
        "Textbook Part 2": "Peribahasa bagai aur dengan tebing bermaksud saling membantu.",
        "Nota Unit 3 (pasted 12 Mac)": "Kata adjektif menerangkan sifat seperti besar dan cantik.",
    }


@pytest.fixture()
def seeded_pipeline(pipeline, sample_notes):
    """Pipeline with sample notes ingested for BM Tahun 3."""
    for source, text in sample_notes.items():
        pipeline.ingest("BM", 3, source, text)
    return pipeline


@pytest.fixture()
def test_client(seeded_pipeline):
    """FastAPI test client over the seeded fake pipeline."""
    return TestClient(create_app(seeded_pipeline))
