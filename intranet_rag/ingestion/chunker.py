"""
Text chunker for web content.

Scraped pages are split with LangChain's RecursiveCharacterTextSplitter so
that each stored document is small enough to rank precisely while keeping a
little context from its neighbour. Paragraphs are tried first, then lines,
then sentences, then words; a token longer than the chunk size is the only
thing ever split mid-word.
"""

from __future__ import annotations

from typing import List

from langchain_text_splitters import RecursiveCharacterTextSplitter

from intranet_rag.utils.logging import LoggerMixin


class TextChunker(LoggerMixin):
    """
    Sentence-aware text chunker with overlap.

    Separators are kept at the end of the piece they close, so a chunk that
    ends on a sentence keeps its terminator.

    Args:
        chunk_size: Maximum chunk length in characters.
        chunk_overlap: Characters carried over from the end of one chunk to
            the start of the next.
        separators: Split points in order of preference.

    Example:
        >>> chunker = TextChunker(chunk_size=500, chunk_overlap=50)
        >>> chunks = chunker.split_text(long_page_text)
        >>> all(len(chunk) <= 500 for chunk in chunks)
        True
    """

    DEFAULT_SEPARATORS = [
        "\n\n",  # Paragraphs
        "\n",    # Lines
        ". ",    # Sentences
        "! ",    # Sentences
        "? ",    # Sentences
        " ",     # Words
        "",      # Characters
    ]

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 100,
        separators: List[str] | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must be >= 0, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be less than chunk_size ({chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = separators if separators is not None else self.DEFAULT_SEPARATORS

        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            separators=self.separators,
            keep_separator="end",
            strip_whitespace=True,
            length_function=len,
            is_separator_regex=False,
        )

        self.logger.info(
            "TextChunker initialized",
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            num_separators=len(self.separators),
        )

    def split_text(self, text: str) -> List[str]:
        """
        Split ``text`` into stripped, non-empty chunks.

        Text that fits in one chunk is returned whole. Blank text yields no
        chunks.
        """
        if not text or not text.strip():
            return []

        chunks = [chunk for chunk in self.splitter.split_text(text) if chunk]

        self.logger.debug(
            "Text chunked",
            text_length=len(text),
            num_chunks=len(chunks),
        )
        return chunks

    def get_stats(self, texts: List[str]) -> dict:
        """
        Preview how ``texts`` would be chunked.

        Returns:
            Dictionary with text, character and chunk counts.
        """
        if not texts:
            return {
                "num_texts": 0,
                "total_characters": 0,
                "num_chunks": 0,
                "avg_chunk_length": 0,
            }

        chunks = [chunk for text in texts for chunk in self.split_text(text)]
        stats = {
            "num_texts": len(texts),
            "total_characters": sum(len(text) for text in texts),
            "num_chunks": len(chunks),
            "avg_chunk_length": (
                sum(len(chunk) for chunk in chunks) / len(chunks) if chunks else 0
            ),
            "chunk_size": self.chunk_size,
            "chunk_overlap": self.chunk_overlap,
        }

        self.logger.debug("Chunking statistics calculated", **stats)
        return stats
