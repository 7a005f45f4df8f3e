"""Route tests for /api/check-key, /api/health and /api/heartbeat."""

from datetime import datetime


class TestCheckKey:
    def test_present(self, client, monkeypatch):
        monkeypatch.setenv("RELAYCHAT_TEST_SECRET", "s3cret")
        resp = client.get("/api/check-key", params={"key": "RELAYCHAT_TEST_SECRET"})
        assert resp.status_code == 200
        assert resp.json() == {"hasKey": True}
        assert "s3cret" not in resp.text

    def test_absent(self, client, monkeypatch):
        monkeypatch.delenv("RELAYCHAT_TEST_SECRET", raising=False)
        assert client.get("/api/check-key", params={"key": "RELAYCHAT_TEST_SECRET"}).json() == {"hasKey": False}

    def test_empty_value_counts_as_absent(self, client, monkeypatch):
        monkeypatch.setenv("RELAYCHAT_TEST_SECRET", "")
        assert client.get("/api/check-key", params={"key": "RELAYCHAT_TEST_SECRET"}).json() == {"hasKey": False}

    def test_missing_key(self, client):
        assert client.get("/api/check-key").status_code == 400

    def test_invalid_name(self, client):
        assert client.get("/api/check-key", params={"key": "not a name"}).status_code == 400


class TestHealth:
    def test_heartbeat(self, client):
        resp = client.get("/api/heartbeat")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_health_structure(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["service"] == "relaychat"
        assert data["store"] == "open"
        assert "version" in data
        assert "git_commit" in data
        datetime.fromisoformat(data["timestamp"])
