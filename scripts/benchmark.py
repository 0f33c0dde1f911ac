"""Performance benchmarking script for content search."""

import asyncio
import sys
import time
from typing import Dict

import httpx


async def benchmark_search(
    content_id: str,
    base_url: str = "http://localhost:8000",
    num_queries: int = 100,
    concurrent: int = 10,
) -> Dict:
    """
    Benchmark search calls against one content endpoint.

    Args:
        content_id: Id of the content to search.
        base_url: Base URL of the service.
        num_queries: Total number of queries to run.
        concurrent: Number of concurrent requests.

    Returns:
        Benchmark results.
    """
    queries = [
        "search",
        "index",
        "running",
        "chunk boundaries",
        "relevance ranking",
    ] * (num_queries // 5 + 1)
    queries = queries[:num_queries]

    latencies = []
    errors = 0

    async def run_query(client: httpx.AsyncClient, request_id: int, query: str) -> None:
        nonlocal errors
        try:
            start = time.time()
            response = await client.post(
                f"{base_url}/mcp/{content_id}",
                json={
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "method": "tools/call",
                    "params": {"name": "search", "arguments": {"query": query, "k": 5}},
                },
            )
            latency = time.time() - start

            if response.status_code == 200 and "result" in response.json():
                latencies.append(latency)
            else:
                errors += 1
        except httpx.HTTPError as e:
            print(f"Error: {e}")
            errors += 1

    start_time = time.time()

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Run queries in batches
        for i in range(0, len(queries), concurrent):
            batch = queries[i:i + concurrent]
            await asyncio.gather(*[run_query(client, i + j, q) for j, q in enumerate(batch)])

    total_time = time.time() - start_time

    if latencies:
        avg_latency = sum(latencies) / len(latencies)
        p50 = sorted(latencies)[len(latencies) // 2]
        p95 = sorted(latencies)[int(len(latencies) * 0.95)]
        p99 = sorted(latencies)[int(len(latencies) * 0.99)]
    else:
        avg_latency = p50 = p95 = p99 = 0

    return {
        "total_queries": num_queries,
        "successful": len(latencies),
        "errors": errors,
        "total_time_seconds": total_time,
        "queries_per_second": num_queries / total_time if total_time > 0 else 0,
        "avg_latency_seconds": avg_latency,
        "p50_latency_seconds": p50,
        "p95_latency_seconds": p95,
        "p99_latency_seconds": p99,
    }


if __name__ == "__main__":
    import json

    if len(sys.argv) < 2:
        print("usage: benchmark.py CONTENT_ID [BASE_URL]")
        sys.exit(1)

    print("Running search benchmark...")
    results = asyncio.run(benchmark_search(*sys.argv[1:3]))
    print("\nSearch Results:")
    print(json.dumps(results, indent=2))
