"""
RAG module - Retrieval-Augmented Generation pipeline.

This module is responsible for:
1. Retrieving relevant chunks for a query, scoped by subject/year/topic
2. Deriving browsable topics from chunk source labels
3. Generating tutoring replies using Ollama
"""

from .generator import OllamaCompletion, TutorReply, TutorReplyGenerator
from .retriever import Retriever, format_context
from .topics import Topic, derive_topic, group_topics, list_topics

__all__ = [
    "OllamaCompletion",
    "TutorReply",
    "TutorReplyGenerator",
    "Retriever",
    "format_context",
    "Topic",
    "derive_topic",
    "group_topics",
    "list_topics",
]
