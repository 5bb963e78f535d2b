"""
Tutor Pipeline - The operations the interfaces call.

TutorPipeline holds one handle per external collaborator (embedding
service, content store, completion service, attempt store) and exposes:

- ingest / ingest_pdf   : chunk, embed and store syllabus text
- retrieve_topics       : list browsable topics for a subject/year
- generate_quiz         : retrieve context, generate a quiz, save an attempt
- submit_attempt        : grade answers and overwrite the attempt's score
- tutor_reply           : answer a pupil's message from retrieved notes
- list_attempts         : recent attempts for the progress view

Collaborators are built once (see from_config) and passed in, so tests
can run the whole pipeline against fakes.
"""

from dataclasses import dataclass, field
from pathlib import Path

from bm_tutor.collaborators import (
    AttemptStore,
    CompletionService,
    EmbeddingService,
    ScopedVectorStore,
)
from bm_tutor.config import (
    CHUNK_MAX_CHARS,
    DEFAULT_QUIZ_ITEMS,
    DIFFICULTIES,
    LANGUAGE_MODES,
    MAX_QUIZ_ITEMS,
    MIN_INGEST_TEXT_CHARS,
    MIN_QUIZ_ITEMS,
    RETRIEVAL_TOP_K,
    SUPPORTED_YEARS,
)
from bm_tutor.embeddings.vector_store import ContentChunk, FileMetadata
from bm_tutor.exceptions import TutorError, UpstreamFailure, ValidationError
from bm_tutor.ingestion.chunker import TextChunker
from bm_tutor.ingestion.pdf_parser import PDFParser
from bm_tutor.logging_utils import get_logger
from bm_tutor.quiz.attempt_store import new_attempt_id
from bm_tutor.quiz.generator import QuizGenerator
from bm_tutor.quiz.grader import ExactMatchJudge, Grader, SemanticJudge
from bm_tutor.quiz.models import GradeReport, Quiz, QuizAttempt
from bm_tutor.quiz.validation import PhraseReferenceDetector
from bm_tutor.rag.generator import TutorReply, TutorReplyGenerator
from bm_tutor.rag.retriever import Retriever
from bm_tutor.rag.topics import Topic, list_topics

logger = get_logger(__name__)


@dataclass
class IngestResult:
    """Outcome of one ingestion call; partial success is allowed."""
    inserted_count: int
    total_chunks: int
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "insertedCount": self.inserted_count,
            "totalChunks": self.total_chunks,
            "errors": self.errors,
        }


@dataclass
class QuizSession:
    """A freshly generated quiz and the attempt created for it."""
    quiz: Quiz
    attempt_id: str

    def to_dict(self) -> dict:
        return {"quiz": self.quiz.to_dict(), "attemptId": self.attempt_id}


def _require_text(name: str, value: str, min_chars: int = 1) -> str:
    if not isinstance(value, str) or len(value.strip()) < min_chars:
        if min_chars > 1:
            raise ValidationError(f"{name} must be at least {min_chars} characters")
        raise ValidationError(f"{name} must not be blank")
    return value.strip()


def _require_year(year: int) -> int:
    if isinstance(year, bool) or not isinstance(year, int) or year not in SUPPORTED_YEARS:
        raise ValidationError(
            f"year must be an integer from {SUPPORTED_YEARS.start} to {SUPPORTED_YEARS.stop - 1}"
        )
    return year


class TutorPipeline:
    """
    Complete tutoring pipeline wired from explicit collaborators.

    Example:
        pipeline = TutorPipeline.from_config()
        pipeline.ingest("BM", 3, "Textbook Part 1", text)
        session = pipeline.generate_quiz("kid-1", 3, "BM", "Peribahasa")
        report = pipeline.submit_attempt(session.attempt_id, {"q1": "besar"})
    """

    def __init__(
        self,
        embedder: EmbeddingService,
        store: ScopedVectorStore,
        completion: CompletionService,
        attempts: AttemptStore,
        chunk_max_chars: int = CHUNK_MAX_CHARS,
        top_k: int = RETRIEVAL_TOP_K,
        detector: PhraseReferenceDetector | None = None,
    ):
        self.embedder = embedder
        self.store = store
        self.completion = completion
        self.attempts = attempts
        self.top_k = top_k

        self.chunker = TextChunker(max_chars=chunk_max_chars)
        self.retriever = Retriever(embedder, store, top_k=top_k)
        self.quiz_generator = QuizGenerator(completion, detector=detector)
        self.grader = Grader(attempts, {
            "mcq": ExactMatchJudge(),
            "short": SemanticJudge(completion),
        })
        self.tutor = TutorReplyGenerator(completion)

    @classmethod
    def from_config(cls) -> "TutorPipeline":
        """Build the production pipeline (sentence-transformers, ChromaDB, Ollama, JSON files)."""
        from bm_tutor.embeddings.embedder import Embedder
        from bm_tutor.embeddings.vector_store import ContentStore
        from bm_tutor.quiz.attempt_store import JsonAttemptStore
        from bm_tutor.rag.generator import OllamaCompletion

        return cls(
            embedder=Embedder(),
            store=ContentStore(),
            completion=OllamaCompletion(),
            attempts=JsonAttemptStore(),
        )

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def ingest(
        self,
        subject: str,
        year: int,
        source: str,
        text: str,
        file_metadata: FileMetadata | None = None,
    ) -> IngestResult:
        """
        Chunk text, embed each chunk and store it.

        A chunk that fails to embed or insert is recorded in `errors` and
        skipped; the call fails only if no chunk at all was stored.

        Raises:
            ValidationError: If any input is malformed
            UpstreamFailure: If every chunk failed
        """
        subject = _require_text("subject", subject)
        year = _require_year(year)
        source = _require_text("source", source)
        text = _require_text("text", text, min_chars=MIN_INGEST_TEXT_CHARS)

        chunks = self.chunker.chunk(text)
        logger.info("Ingesting %r: %d chunk(s) for %s/Tahun %d", source, len(chunks), subject, year)

        inserted = 0
        errors = []
        for i, content in enumerate(chunks):
            try:
                embedding = self.embedder.embed(content)
                self.store.insert(ContentChunk(
                    subject=subject,
                    year=year,
                    source=source,
                    chunk_index=i,
                    content=content,
                    embedding=embedding,
                    file_metadata=file_metadata,
                ))
            except TutorError as e:
                logger.warning("Chunk %d of %r failed: %s", i, source, e)
                errors.append(f"Chunk {i}: {e.message}")
            else:
                inserted += 1

        if chunks and inserted == 0:
            raise UpstreamFailure(
                f"no chunks inserted ({len(errors)} failed); first error: {errors[0]}",
                service="ingest",
            )

        return IngestResult(inserted_count=inserted, total_chunks=len(chunks), errors=errors)

    def ingest_pdf(
        self,
        subject: str,
        year: int,
        source: str,
        pdf_path: str | Path,
        start_page: int = 1,
        end_page: int | None = None,
    ) -> IngestResult:
        """
        Extract text from a PDF and ingest it.

        The stored source label is "<source> (<file name>)".
        """
        source = _require_text("source", source)
        pdf_path = Path(pdf_path)
        document = PDFParser().parse_pdf(pdf_path, start_page=start_page, end_page=end_page)

        return self.ingest(
            subject,
            year,
            f"{source} ({document.filename})",
            document.text,
            file_metadata=FileMetadata(
                url=pdf_path.resolve().as_uri(),
                name=document.filename,
                mime_type=document.mime_type,
            ),
        )

    # -------------------------------------------------------------------------
    # Retrieval
    # -------------------------------------------------------------------------

    def retrieve_topics(self, subject: str, year: int) -> list[Topic]:
        """List the topics derived from the source labels of one subject/year."""
        subject = _require_text("subject", subject)
        year = _require_year(year)
        return list_topics(self.store, subject, year)

    # -------------------------------------------------------------------------
    # Quiz
    # -------------------------------------------------------------------------

    def generate_quiz(
        self,
        child_id: str,
        year: int,
        subject: str,
        topic: str,
        difficulty: str = "easy",
        count: int = DEFAULT_QUIZ_ITEMS,
    ) -> QuizSession:
        """
        Generate a quiz on a topic and create its attempt (score 0).

        Raises:
            ValidationError: If any input is malformed
            GenerationFailure: If no valid quiz came back within the retry budget
            UpstreamFailure: If retrieval, completion or the attempt write fails
        """
        child_id = _require_text("child_id", child_id)
        year = _require_year(year)
        subject = _require_text("subject", subject)
        topic = _require_text("topic", topic)
        if difficulty not in DIFFICULTIES:
            raise ValidationError(f"difficulty must be one of {', '.join(DIFFICULTIES)}")
        if isinstance(count, bool) or not isinstance(count, int) or not (
            MIN_QUIZ_ITEMS <= count <= MAX_QUIZ_ITEMS
        ):
            raise ValidationError(
                f"count must be an integer from {MIN_QUIZ_ITEMS} to {MAX_QUIZ_ITEMS}"
            )

        context = self.retriever.retrieve(subject, year, topic, top_k=self.top_k)
        quiz = self.quiz_generator.generate(
            topic, year, difficulty, count, context, subject=subject
        )

        attempt = QuizAttempt(
            id=new_attempt_id(),
            child_id=child_id,
            subject=subject,
            year=year,
            topic=topic,
            score=0,
            total=len(quiz.items),
            payload=quiz,
        )
        attempt_id = self.attempts.insert(attempt)
        return QuizSession(quiz=quiz, attempt_id=attempt_id)

    def submit_attempt(self, attempt_id: str, answers: dict[str, str]) -> GradeReport:
        """
        Grade submitted answers for an attempt.

        Raises:
            ValidationError: If answers is not a mapping of item id to text
            NotFound: If the attempt does not exist
            InvalidAttempt: If the stored quiz cannot be graded
        """
        attempt_id = _require_text("attempt_id", attempt_id)
        if not isinstance(answers, dict):
            raise ValidationError("answers must map item ids to answer text")
        answers = {
            str(item_id): "" if answer is None else str(answer)
            for item_id, answer in answers.items()
        }
        return self.grader.grade(attempt_id, answers)

    def list_attempts(self, limit: int = 30) -> list[QuizAttempt]:
        """Most recent quiz attempts first."""
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        return self.attempts.list_recent(limit)

    # -------------------------------------------------------------------------
    # Tutoring
    # -------------------------------------------------------------------------

    def tutor_reply(
        self,
        child_id: str,
        subject: str,
        year: int,
        message: str,
        language_mode: str = "BM_EN",
        topic_key: str | None = None,
    ) -> TutorReply:
        """
        Answer a pupil's message using retrieved syllabus notes.

        Raises:
            ValidationError: If any input is malformed
            UpstreamFailure: If retrieval or completion fails
        """
        _require_text("child_id", child_id)
        subject = _require_text("subject", subject)
        year = _require_year(year)
        message = _require_text("message", message)
        if language_mode not in LANGUAGE_MODES:
            raise ValidationError(f"language_mode must be one of {', '.join(LANGUAGE_MODES)}")
        topic_key = topic_key.strip() if topic_key and topic_key.strip() else None

        context = self.retriever.retrieve(
            subject, year, message, top_k=self.top_k, topic_key=topic_key
        )
        return self.tutor.reply(message, context, year, language_mode, topic_key)
