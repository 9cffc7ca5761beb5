"""Brain ingest pipeline: chunking, loading and embedding."""

from brain.ingest.base import SourceLoader
from brain.ingest.chunker import TextChunker
from brain.ingest.embedder import Embedder, LiteLLMEmbedder
from brain.ingest.git import GitLoader
from brain.ingest.local import FilesystemLoader

__all__ = [
    "Embedder",
    "FilesystemLoader",
    "GitLoader",
    "LiteLLMEmbedder",
    "SourceLoader",
    "TextChunker",
]
