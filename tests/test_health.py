"""
Venture OS
Tests — health probes, request guards and response headers.
"""


class TestHealth:
    def test_liveness(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok", "app": "Venture OS"}

    def test_readiness(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "ok"
        assert body["checks"]["database"]["status"] == "ok"
        assert body["checks"]["rate_limiter"]["status"] == "disabled"
        assert body["checks"]["agent_auth"]["status"] == "ok"


class TestRequestGuards:
    def test_unknown_route_is_json(self, client):
        res = client.get("/api/v1/nowhere")
        assert res.status_code == 404
        assert res.get_json() == {"error": "Not found", "path": "/api/v1/nowhere"}

    def test_method_not_allowed(self, client):
        res = client.delete("/api/v1/health")
        assert res.status_code == 405

    def test_non_json_body_rejected(self, client):
        res = client.post("/api/v1/clients", data="name=Acme",
                          content_type="application/x-www-form-urlencoded")
        assert res.status_code == 415
        assert res.get_json()["error"] == "Content-Type must be application/json"

    def test_empty_post_allowed(self, client):
        res = client.post("/api/v1/clients")
        assert res.status_code == 400
        assert res.get_json()["error"] == "Name is required"


class TestResponseHeaders:
    def test_security_headers(self, client):
        res = client.get("/api/v1/health")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert res.headers["Cache-Control"] == "no-store"
        assert "Server" not in res.headers

    def test_request_timing(self, client):
        res = client.get("/api/v1/health")
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0
        assert res.headers["X-Request-ID"]
