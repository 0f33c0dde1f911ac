"""Document chunking service."""

import logging
from typing import List, Optional, Tuple

from langchain_text_splitters import RecursiveCharacterTextSplitter

from textindex.core.config import settings
from textindex.models.content import ChunkDocument

logger = logging.getLogger(__name__)

# Largest boundary first: paragraph, line, sentence, word, character.
SEPARATORS = ["\n\n", "\n", ". ", "! ", "? ", " ", ""]


class ChunkingService:
    """Service for chunking documents into bounded, boundary-aware pieces."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        min_chars_per_chunk: Optional[int] = None,
    ) -> None:
        """
        Initialize the chunking service.

        Args:
            chunk_size: Maximum characters per chunk.
            min_chars_per_chunk: Pieces shorter than this are merged into
                their predecessor, so a chunk may exceed chunk_size by less
                than this many characters plus the whitespace between them.
        """
        self.chunk_size = chunk_size or settings.chunk_size
        self.min_chars_per_chunk = (
            settings.min_chars_per_chunk
            if min_chars_per_chunk is None
            else min_chars_per_chunk
        )
        self.splitter = RecursiveCharacterTextSplitter(
            separators=SEPARATORS,
            keep_separator="end",
            chunk_size=self.chunk_size,
            chunk_overlap=0,
            length_function=len,
        )

    def _locate(self, text: str, pieces: List[str]) -> Optional[List[Tuple[int, int]]]:
        """
        Find the span of every piece in the source text.

        Args:
            text: Source text.
            pieces: Pieces produced by the splitter, in order.

        Returns:
            List of (start, end) offsets, or None if a piece cannot be found.
        """
        spans = []
        cursor = 0
        for piece in pieces:
            start = text.find(piece, cursor)
            if start < 0:
                return None
            cursor = start + len(piece)
            spans.append((start, cursor))
        return spans

    def split(self, text: str) -> List[str]:
        """
        Split text into ordered chunks.

        Args:
            text: Text to split.

        Returns:
            Chunks in appearance order. Joining them reproduces the text
            up to whitespace at chunk boundaries.
        """
        if not text or not text.strip():
            return []

        pieces = self.splitter.split_text(text)
        spans = self._locate(text, pieces)
        if spans is None:
            logger.warning("Could not locate chunk spans, skipping merge of short chunks")
            return pieces

        merged: List[Tuple[int, int]] = []
        for start, end in spans:
            if merged and end - start < self.min_chars_per_chunk:
                merged[-1] = (merged[-1][0], end)
            else:
                merged.append((start, end))

        return [text[start:end] for start, end in merged]

    def chunk_document(self, content: str, source_name: str) -> List[ChunkDocument]:
        """
        Chunk a document into indexable pieces.

        Args:
            content: Document content to chunk.
            source_name: Display name of the source document.

        Returns:
            List of chunk documents numbered from zero.
        """
        return [
            ChunkDocument(chunk_index=idx, text=chunk_text, source_name=source_name)
            for idx, chunk_text in enumerate(self.split(content))
        ]
