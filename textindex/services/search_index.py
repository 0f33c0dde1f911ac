"""Full-text search index over content chunks."""

import logging
import time
from typing import List

from nltk.stem.snowball import SnowballStemmer
from whoosh.analysis import StemmingAnalyzer
from whoosh.fields import NUMERIC, STORED, TEXT, Schema
from whoosh.filedb.filestore import RamStorage
from whoosh.qparser import FieldsPlugin, OrGroup, QueryParser, WildcardPlugin
from whoosh.query import Every, NullQuery
from whoosh.scoring import BM25F

from textindex.models.content import ChunkDocument, SearchHit, SearchResult

logger = logging.getLogger(__name__)

# Okapi BM25 parameters
BM25_K1 = 1.2
BM25_B = 0.75

# Every word is searchable, so no stop list and no minimum length.
ANALYZER = StemmingAnalyzer(
    stemfn=SnowballStemmer("english").stem,
    stoplist=None,
    minsize=1,
)

SCHEMA = Schema(
    chunk_index=NUMERIC(stored=True, sortable=True),
    text=TEXT(stored=True, analyzer=ANALYZER),
    source_name=STORED,
)


def tokenize(text: str) -> List[str]:
    """
    Split text into stemmed tokens the way the index does.

    Args:
        text: Raw text.

    Returns:
        Stemmed, lower-cased tokens in order of appearance.
    """
    return [token.text for token in ANALYZER(text)]


class SearchIndex:
    """In-memory whoosh index with BM25F ranking over one content's chunks."""

    def __init__(self, documents: List[ChunkDocument]) -> None:
        """
        Initialize the index.

        Args:
            documents: Chunk documents to index, ordered by chunk index.
        """
        self.documents = documents
        self.ix = RamStorage().create_index(SCHEMA)

        if documents:
            writer = self.ix.writer()
            for document in documents:
                writer.add_document(
                    chunk_index=document.chunk_index,
                    text=document.text,
                    source_name=document.source_name,
                )
            writer.commit()

    @classmethod
    def build(cls, documents: List[ChunkDocument]) -> "SearchIndex":
        """Build an index over the given chunk documents."""
        return cls(documents)

    def __len__(self) -> int:
        return len(self.documents)

    def search(self, term: str, limit: int) -> SearchResult:
        """
        Run a ranked term query.

        Args:
            term: Query string; may contain several words, any of which matches.
            limit: Maximum number of hits to return.

        Returns:
            Search result with the total match count and the top hits.
            A query without searchable words matches every document in
            chunk order with score 0.
        """
        start_time = time.perf_counter()
        limit = max(0, limit)

        if not self.documents:
            return SearchResult(count=0, elapsed_seconds=time.perf_counter() - start_time)

        with self.ix.searcher(weighting=BM25F(B=BM25_B, K1=BM25_K1)) as searcher:
            parser = QueryParser("text", schema=self.ix.schema, group=OrGroup)
            # Plain words only: "?" and "field:" are literal text here.
            parser.remove_plugin_class(WildcardPlugin)
            parser.remove_plugin_class(FieldsPlugin)
            query = parser.parse(term) if term.strip() else NullQuery

            if query is NullQuery:
                results = searcher.search(Every(), limit=None, sortedby="chunk_index")
                scored = False
            else:
                logger.debug(f"Parsed query: {query}")
                results = searcher.search(query, limit=max(1, limit), scored=True)
                scored = True

            count = len(results)
            hits = [
                SearchHit(
                    document=ChunkDocument(
                        chunk_index=hit["chunk_index"],
                        text=hit["text"],
                        source_name=hit["source_name"],
                    ),
                    score=hit.score if scored else 0.0,
                )
                for hit in results[:limit]
            ]

        return SearchResult(
            count=count,
            hits=hits,
            elapsed_seconds=time.perf_counter() - start_time,
        )
