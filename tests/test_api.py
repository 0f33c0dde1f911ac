"""
Integration tests for the HTTP API.

Tests the management routes, tenant hosts and the JSON-RPC endpoint end to end
against in-memory storage.
"""

import pytest
from fastapi.testclient import TestClient

from textindex.main import create_app

TENANT_HOST = "{id}.txt2mcp.com"


@pytest.fixture
def client(container):
    with TestClient(create_app(container)) as test_client:
        yield test_client


def _upload(client, body=b"Kubernetes schedules pods onto nodes.", name="k8s.txt"):
    response = client.post("/api/upload", files={"file": (name, body, "text/plain")})
    assert response.status_code == 200
    return response.json()


class TestManagementApi:
    """Test suite for the management routes."""

    def test_root_describes_service(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "textindex"

    def test_upload(self, client):
        created = _upload(client)

        assert len(created["id"]) == 24
        assert created["url"] == f"https://{created['id']}.txt2mcp.com/mcp"

    def test_upload_without_file(self, client):
        response = client.post("/api/upload", data={"other": "value"})

        assert response.status_code == 400
        assert response.json()["detail"] == "No file provided"

    def test_upload_too_large(self, client):
        response = client.post(
            "/api/upload",
            files={"file": ("big.txt", b"a" * (10 * 1024 * 1024 + 1), "text/plain")},
        )

        assert response.status_code == 400
        assert "10MB" in response.json()["detail"]

    def test_remote(self, client, remote_source):
        remote_source.body = "Remote handbook."

        response = client.post("/api/remote", json={"url": "https://example.com/handbook.txt"})

        assert response.status_code == 200
        status = client.get(f"/api/status/{response.json()['id']}").json()
        assert status["type"] == "remote"
        assert status["sourceUrl"] == "https://example.com/handbook.txt"
        assert status["content"] == "Remote handbook."

    def test_remote_invalid_url(self, client):
        response = client.post("/api/remote", json={"url": "not-a-url"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid URL"

    @pytest.mark.parametrize("payload", [{"url": 123}, {"url": {"href": "https://example.com"}}])
    def test_remote_non_string_url(self, client, payload):
        response = client.post("/api/remote", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid URL"

    def test_remote_malformed_body(self, client):
        response = client.post("/api/remote", json=["https://example.com"])
        assert response.status_code == 400

    def test_remote_missing_url(self, client):
        response = client.post("/api/remote", json={})

        assert response.status_code == 400
        assert response.json()["detail"] == "No URL provided"

    def test_remote_unreachable(self, client, remote_source, blob_store):
        remote_source.status_code = 500

        response = client.post("/api/remote", json={"url": "https://example.com/down.txt"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Failed to fetch remote content"
        assert blob_store.objects == {}

    def test_status(self, client):
        created = _upload(client)

        response = client.get(f"/api/status/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "k8s.txt"
        assert body["type"] == "upload"
        assert body["content"] == "Kubernetes schedules pods onto nodes."
        assert "createdAt" in body
        assert "lastUpdated" in body
        assert "sourceUrl" not in body

    def test_status_not_found(self, client):
        response = client.get("/api/status/unknown")
        assert response.status_code == 404

    def test_health_and_readiness(self, client):
        assert client.get("/health").json()["status"] == "healthy"
        assert client.get("/ready").json()["ready"] is True

    def test_metrics(self, client):
        _upload(client)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "textindex_content_created_total" in response.text


class TestToolEndpoint:
    """Test suite for tenant hosts and the JSON-RPC endpoint."""

    def test_tenant_root(self, client):
        created = _upload(client)
        host = TENANT_HOST.format(id=created["id"])

        response = client.get("/", headers={"host": host})

        body = response.json()
        assert body["id"] == created["id"]
        assert body["endpoint"] == f"https://{host}/mcp"

    def test_tenant_host_hides_management_routes(self, client):
        response = client.get("/api/status/anything", headers={"host": "abc.txt2mcp.com"})
        assert response.status_code == 404

    def test_reserved_host_rejected(self, client):
        response = client.post(
            "/mcp",
            headers={"host": "www.txt2mcp.com"},
            json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
        )

        assert response.status_code == 400

    def test_search_over_tenant_host(self, client):
        created = _upload(client)

        response = client.post(
            "/mcp",
            headers={"host": TENANT_HOST.format(id=created["id"])},
            json={
                "jsonrpc": "2.0",
                "id": 7,
                "method": "tools/call",
                "params": {"name": "search", "arguments": {"query": "pod"}},
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == 7
        text = body["result"]["content"][0]["text"]
        assert 'Found 1 result for "pod" in "k8s.txt"' in text

    def test_search_by_path_id(self, client):
        created = _upload(client)

        response = client.post(
            f"/mcp/{created['id'].upper()}",
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "method": "tools/call",
                "params": {"name": "search", "arguments": {"query": "nodes", "k": 1}},
            },
        )

        assert "Showing top 1 result:" in response.json()["result"]["content"][0]["text"]

    def test_search_unknown_id(self, client):
        response = client.post(
            "/mcp/nothinghere",
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "method": "tools/call",
                "params": {"name": "search", "arguments": {"query": "x"}},
            },
        )

        text = response.json()["result"]["content"][0]["text"]
        assert text.startswith("No content available to search")

    def test_unknown_tenant_hosts_hold_no_actors(self, client, container):
        for i in range(50):
            response = client.post(
                "/mcp",
                headers={"host": f"junk{i}.txt2mcp.com"},
                json={
                    "jsonrpc": "2.0",
                    "id": i,
                    "method": "tools/call",
                    "params": {"name": "search", "arguments": {"query": "x"}},
                },
            )
            assert response.status_code == 200

        assert len(container.registry) == 0

    def test_batch_with_notification(self, client):
        response = client.post(
            "/mcp/doc1",
            json=[
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                {"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
            ],
        )

        body = response.json()
        assert isinstance(body, list)
        assert len(body) == 1
        assert body[0]["result"]["tools"][0]["name"] == "search"

    def test_notification_only(self, client):
        response = client.post(
            "/mcp/doc1", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert response.status_code == 202

    def test_parse_error(self, client):
        response = client.post(
            "/mcp/doc1",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32700

    def test_invalid_request(self, client):
        response = client.post("/mcp/doc1", json={"jsonrpc": "2.0", "id": 1})
        assert response.json()["error"]["code"] == -32600

    def test_discovery(self, client):
        response = client.get("/mcp/doc1")

        assert response.status_code == 200
        assert response.json()["tools"][0]["name"] == "search"
