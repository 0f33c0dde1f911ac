"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Gauge, Histogram

content_created_total = Counter(
    "textindex_content_created_total", "Total number of content endpoints created", ["source_type"])
content_create_errors_total = Counter(
    "textindex_content_create_errors_total", "Total number of rejected or failed creations")

searches_total = Counter("textindex_searches_total",
                         "Total number of searches processed")
search_errors_total = Counter(
    "textindex_search_errors_total", "Total number of search errors")
search_latency_seconds = Histogram(
    "textindex_search_latency_seconds", "Search latency in seconds", buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0])
index_build_seconds = Histogram(
    "textindex_index_build_seconds", "Chunking and index build duration", buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0])

refreshes_total = Counter("textindex_refreshes_total",
                          "Total number of scheduled refreshes executed")
refresh_failures_total = Counter(
    "textindex_refresh_failures_total", "Total number of failed scheduled refreshes")

active_actors = Gauge("textindex_active_actors",
                      "Number of content actors held in memory")
