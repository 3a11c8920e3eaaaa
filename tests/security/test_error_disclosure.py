"""
Security tests for error rendering

Stack traces are only ever shown in development mode.
"""

import logging

import pytest

pytestmark = pytest.mark.security


def _add_failing_route(app):
    @app.get("/_test/explode")
    async def explode():
        raise RuntimeError("kaboom: internal detail")


class TestProductionErrors:
    """Any mode other than development renders generic messages"""

    def test_internal_error_is_generic(self, app, client):
        _add_failing_route(app)

        response = client.get("/_test/explode")

        assert response.status_code == 500
        assert response.text == "Server Error"
        assert "Traceback" not in response.text
        assert "kaboom" not in response.text

    def test_internal_error_as_json_is_generic(self, app, client):
        _add_failing_route(app)

        response = client.get("/_test/explode", headers={"Accept": "application/json"})

        assert response.status_code == 500
        assert response.json() == {"error": "Server Error"}

    def test_internal_error_is_logged(self, app, client, caplog):
        _add_failing_route(app)

        with caplog.at_level(logging.ERROR, logger="hello_server.core.errors"):
            client.get("/_test/explode")

        records = [r for r in caplog.records if r.name == "hello_server.core.errors"]
        assert records
        assert records[0].exc_info is not None

    def test_malformed_json_hides_parser_detail(self, client):
        response = client.post("/", content="{bad", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert "Traceback" not in response.text

    @pytest.mark.parametrize("method, path", [("GET", "/missing"), ("POST", "/")])
    def test_client_errors_are_generic(self, client, method, path):
        response = client.request(method, path)

        assert response.status_code in (404, 405)
        assert response.text == "Server Error"


class TestDevelopmentErrors:
    """Development mode renders the stack trace"""

    @pytest.fixture
    def dev_app(self, make_settings):
        from hello_server.main import create_app

        app = create_app(make_settings(environment="development"))
        _add_failing_route(app)
        return app

    @pytest.fixture
    def dev_client(self, dev_app):
        from fastapi.testclient import TestClient

        with TestClient(dev_app, raise_server_exceptions=False) as test_client:
            yield test_client

    def test_internal_error_includes_stack_trace(self, dev_client):
        response = dev_client.get("/_test/explode")

        assert response.status_code == 500
        assert "Traceback" in response.text
        assert "kaboom: internal detail" in response.text

    def test_internal_error_as_json_includes_stack(self, dev_client):
        response = dev_client.get("/_test/explode", headers={"Accept": "application/json"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["message"] == "kaboom: internal detail"
        assert "Traceback" in error["stack"]

    def test_not_found_is_verbose(self, dev_client):
        response = dev_client.get("/missing")

        assert response.status_code == 404
        assert "Not Found" in response.text
        assert "HTTPException" in response.text

    def test_body_errors_describe_the_problem(self, dev_client):
        response = dev_client.post(
            "/",
            content="x" * 200_000,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 413
        assert response.text == "request entity too large"

    def test_node_env_selects_development(self, monkeypatch):
        from hello_server.core.config import Settings

        monkeypatch.setenv("NODE_ENV", "development")
        assert Settings(_env_file=None).is_development
