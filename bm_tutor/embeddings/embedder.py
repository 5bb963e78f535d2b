"""
Embedder - Converts text to vector embeddings.

Wraps a sentence-transformers model behind the EmbeddingService
capability. There is no caching or retry here: each call is one
encode, and failures surface as UpstreamFailure for the caller.

IMPORTANT: Always use the same model for indexing and querying!
Chunks embedded with one model cannot be searched with another.
"""

from sentence_transformers import SentenceTransformer

from bm_tutor.config import EMBEDDING_MODEL
from bm_tutor.exceptions import UpstreamFailure, ValidationError
from bm_tutor.logging_utils import get_logger

logger = get_logger(__name__)


class Embedder:
    """
    Converts text to vector embeddings using sentence-transformers.

    Example:
        embedder = Embedder()
        vector = embedder.embed("Apakah maksud peribahasa?")
        print(len(vector))  # 384
    """

    def __init__(self, model_name: str | None = None):
        """
        Initialize the embedder with a model.

        Args:
            model_name: Name of the sentence-transformer model to use.
                       Defaults to the model specified in config.

        Note:
            First use downloads the model; later runs use the cache.
        """
        self.model_name = model_name or EMBEDDING_MODEL
        self._model = None  # Lazy loading

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the model on first use."""
        if self._model is None:
            logger.info("Loading embedding model: %s", self.model_name)
            try:
                self._model = SentenceTransformer(self.model_name)
            except Exception as e:
                raise UpstreamFailure(str(e), service="embedding") from e
        return self._model

    def embed(self, text: str) -> list[float]:
        """
        Convert a single text to a unit-length embedding vector.

        Raises:
            ValidationError: If text is blank
            UpstreamFailure: If the model fails to load or encode
        """
        if not text or not text.strip():
            raise ValidationError("Cannot embed blank text")

        model = self.model
        try:
            embedding = model.encode(
                text,
                convert_to_numpy=True,
                normalize_embeddings=True,
                show_progress_bar=False,
            )
        except Exception as e:
            raise UpstreamFailure(str(e), service="embedding") from e
        return embedding.tolist()
