"""Script to upload sample documents to a running textindex service."""

import asyncio
import sys

import httpx


async def ingest_sample_documents(base_url: str = "http://localhost:8000") -> None:
    """Upload sample documents through the management API."""
    sample_documents = [
        {
            "name": "full-text-search.txt",
            "content": "Full-text search engines build an inverted index that maps every term to the documents containing it. "
            "Queries are tokenized and stemmed the same way as documents, so searching for running also finds run. "
            "Relevance ranking functions such as BM25 reward documents where query terms appear often.\n\n"
            "An index can be rebuilt on every query when documents are small, which keeps results consistent with the latest content.",
        },
        {
            "name": "chunking.txt",
            "content": "Chunking splits long text into pieces that are small enough to retrieve individually. "
            "Recursive chunkers try paragraph boundaries first, then sentences, then words.\n\n"
            "Very short trailing pieces are merged into the previous chunk so that no chunk is a meaningless fragment.",
        },
    ]

    async with httpx.AsyncClient(timeout=30.0) as client:
        for doc in sample_documents:
            response = await client.post(
                f"{base_url}/api/upload",
                files={"file": (doc["name"], doc["content"].encode("utf-8"), "text/plain")},
            )
            response.raise_for_status()
            data = response.json()
            print(f"Uploaded {doc['name']}: id={data['id']} url={data['url']}")

    print(f"\nIngested {len(sample_documents)} documents")


if __name__ == "__main__":
    asyncio.run(ingest_sample_documents(*sys.argv[1:2]))
