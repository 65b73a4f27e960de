"""
Tests for the HTTP surface: single-task endpoints, /queue and /health.
"""
import json
import re
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from apps.api.main import app
from src.api.v1.scrape import get_app_settings, get_task_runner
from src.config import Settings
from src.schemas.scrape import TaskType
from src.services.scraper.core.engine import TaskRunner
from src.services.scraper.core.throttle import Throttle

from tests.fakes import EchoExtractor, FailingExtractor, MustNotRunExtractor

SCRAPED_AT_RE = r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z"


@pytest.fixture
def client_for():
    """Build a TestClient wired to the given runner and settings."""

    def _make(runner: TaskRunner, settings: Settings = None) -> TestClient:
        app.dependency_overrides[get_task_runner] = lambda: runner
        app.dependency_overrides[get_app_settings] = lambda: settings or Settings()
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(client_for, runner):
    return client_for(runner)


def parse_lines(response):
    return [json.loads(line) for line in response.text.splitlines() if line]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestSingleEndpoints:
    """Test the five single-task GET endpoints."""

    @pytest.mark.parametrize(
        "path,message",
        [
            ("/profile", "Missing ?url"),
            ("/profile_posts", "Missing ?url"),
            ("/company", "Missing ?url"),
            ("/company_posts", "Missing ?url"),
            ("/jobs_company", "Missing ?url (company page)"),
        ],
    )
    def test_missing_url_returns_400_without_session(self, client, session_factory, path, message):
        response = client.get(path)

        assert response.status_code == 400
        assert response.json() == {"error": message}
        assert session_factory.acquired == 0

    def test_profile_returns_record(self, client, session_factory):
        response = client.get("/profile", params={"url": "https://www.linkedin.com/in/jane"})

        assert response.status_code == 200
        body = response.json()
        assert body["url"] == "https://www.linkedin.com/in/jane"
        assert body["data"] == {"name": "Jane Doe"}
        assert re.fullmatch(SCRAPED_AT_RE, body["scrapedAt"])
        assert session_factory.acquired == session_factory.released == 1

    def test_posts_endpoint_passes_days(self, client, echo_extractors):
        response = client.get(
            "/company_posts", params={"url": "https://www.linkedin.com/company/acme", "days": 7}
        )

        assert response.status_code == 200
        assert echo_extractors[TaskType.COMPANY_POSTS].calls[0].days == 7

    def test_invalid_days_is_rejected(self, client):
        response = client.get(
            "/profile_posts", params={"url": "https://www.linkedin.com/in/jane", "days": "week"}
        )
        assert response.status_code == 422

    def test_extractor_failure_returns_500(self, client_for, session_factory):
        runner = TaskRunner(
            extractors={TaskType.COMPANY: FailingExtractor(RuntimeError("Timeout 60000ms exceeded"))},
            session_factory=session_factory,
            throttle=Throttle(0, 0),
        )
        client = client_for(runner)

        response = client.get("/company", params={"url": "https://www.linkedin.com/company/acme"})

        assert response.status_code == 500
        assert response.json() == {"error": "Timeout 60000ms exceeded"}
        assert session_factory.released == 1

    def test_login_flag_requests_session(self, client_for, echo_extractors, session_factory):
        authenticator = AsyncMock()
        runner = TaskRunner(
            extractors=echo_extractors,
            session_factory=session_factory,
            throttle=Throttle(0, 0),
            authenticator=authenticator,
        )
        client = client_for(runner)

        response = client.get("/profile", params={"url": "https://www.linkedin.com/in/jane", "login": "1"})

        assert response.status_code == 200
        assert echo_extractors[TaskType.PROFILE].calls[0].use_session is True
        authenticator.ensure_login.assert_awaited_once()

    def test_configured_credentials_imply_session(self, client_for, echo_extractors, session_factory):
        runner = TaskRunner(
            extractors=echo_extractors,
            session_factory=session_factory,
            throttle=Throttle(0, 0),
            authenticator=AsyncMock(),
        )
        client = client_for(runner, Settings(linkedin_email="jane@example.com", linkedin_password="secret"))

        client.get("/company", params={"url": "https://www.linkedin.com/company/acme"})

        assert echo_extractors[TaskType.COMPANY].calls[0].use_session is True


class TestQueue:
    """Test POST /queue in streaming and aggregated modes."""

    def test_streams_one_line_per_task_in_order(self, client):
        tasks = [
            {"type": "company", "url": "https://www.linkedin.com/company/a"},
            {"type": "profile", "url": "https://www.linkedin.com/in/b"},
            {"type": "company_posts", "url": "https://www.linkedin.com/company/c", "days": 14},
        ]

        response = client.post("/queue", json={"tasks": tasks})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")
        lines = parse_lines(response)
        assert [line["url"] for line in lines] == [t["url"] for t in tasks]
        assert [line["type"] for line in lines] == [t["type"] for t in tasks]
        assert all(line["ok"] for line in lines)

    def test_stream_line_shape(self, client):
        response = client.post(
            "/queue",
            json={"stream": True, "tasks": [{"type": "company", "url": "https://www.linkedin.com/company/acme"}]},
        )

        lines = response.text.splitlines()
        assert len(lines) == 1
        assert re.fullmatch(
            r'\{"ok":true,"type":"company","url":"https://www\.linkedin\.com/company/acme",'
            r'"result":\{"url":"https://www\.linkedin\.com/company/acme","scrapedAt":"'
            + SCRAPED_AT_RE
            + r'","data":\{"name":"Acme"\}\}\}',
            lines[0],
        )

    def test_unknown_type_is_reported_without_running(self, client_for, session_factory):
        runner = TaskRunner(
            extractors={kind: MustNotRunExtractor() for kind in TaskType},
            session_factory=session_factory,
            throttle=Throttle(0, 0),
        )
        client = client_for(runner)

        response = client.post("/queue", json={"tasks": [{"type": "group", "url": "https://x.example/1"}]})

        assert parse_lines(response) == [
            {"ok": False, "type": "group", "url": "https://x.example/1", "error": "unknown_type"}
        ]
        assert session_factory.acquired == 0

    def test_failure_does_not_stop_later_tasks(self, client_for, session_factory):
        runner = TaskRunner(
            extractors={
                TaskType.PROFILE: FailingExtractor(RuntimeError("boom")),
                TaskType.COMPANY: EchoExtractor({"name": "Acme"}),
            },
            session_factory=session_factory,
            throttle=Throttle(0, 0),
        )
        client = client_for(runner)

        response = client.post(
            "/queue",
            json={
                "tasks": [
                    {"type": "profile", "url": "https://www.linkedin.com/in/a"},
                    {"type": "company"},
                    {"type": "company", "url": "https://www.linkedin.com/company/acme"},
                ]
            },
        )

        lines = parse_lines(response)
        assert [line["ok"] for line in lines] == [False, False, True]
        assert lines[0]["error"] == "boom"
        assert lines[1]["error"] == "Missing url"
        assert lines[2]["result"]["data"] == {"name": "Acme"}

    def test_non_streaming_returns_aggregate(self, client):
        response = client.post(
            "/queue",
            json={
                "stream": False,
                "tasks": [
                    {"type": "company", "url": "https://www.linkedin.com/company/a"},
                    {"type": "bogus", "url": "https://www.linkedin.com/company/b"},
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert [r["ok"] for r in body["results"]] == [True, False]
        assert body["results"][1]["error"] == "unknown_type"

    def test_queue_login_flag(self, client, echo_extractors):
        client.post(
            "/queue",
            json={
                "tasks": [
                    {"type": "company", "url": "https://www.linkedin.com/company/a", "login": 1},
                    {"type": "company", "url": "https://www.linkedin.com/company/b"},
                ]
            },
        )

        calls = echo_extractors[TaskType.COMPANY].calls
        # No authenticator on the default runner: only the plain task reaches the extractor
        assert [c.url for c in calls] == ["https://www.linkedin.com/company/b"]

    def test_empty_tasks_returns_400(self, client):
        response = client.post("/queue", json={"tasks": []})

        assert response.status_code == 400
        assert response.json() == {"error": "Provide tasks: [{type,url,days?,login?}, ...]"}

    def test_missing_body_returns_400(self, client):
        response = client.post("/queue")
        assert response.status_code == 400

    def test_non_json_body_returns_400(self, client, session_factory):
        response = client.post(
            "/queue", content=b"tasks=company", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Provide tasks: [{type,url,days?,login?}, ...]"}
        assert session_factory.acquired == 0

    @pytest.mark.parametrize("body", [{"tasks": "x"}, {"tasks": {"type": "company"}}, ["company"], {"stream": True}])
    def test_tasks_must_be_a_non_empty_array(self, client, body):
        response = client.post("/queue", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Provide tasks: [{type,url,days?,login?}, ...]"}

    def test_invalid_entry_fails_alone(self, client, echo_extractors):
        response = client.post(
            "/queue",
            json={
                "tasks": [
                    {"type": "company_posts", "url": "https://www.linkedin.com/company/a", "days": "abc"},
                    "company",
                    {"type": "company", "url": "https://www.linkedin.com/company/b"},
                ]
            },
        )

        assert response.status_code == 200
        lines = parse_lines(response)
        assert [line["ok"] for line in lines] == [False, False, True]
        assert lines[0]["type"] == "company_posts"
        assert lines[0]["url"] == "https://www.linkedin.com/company/a"
        assert lines[0]["error"].startswith("Invalid task: days")
        assert lines[1]["error"].startswith("Invalid task")
        assert echo_extractors[TaskType.COMPANY_POSTS].calls == []
        assert [c.url for c in echo_extractors[TaskType.COMPANY].calls] == ["https://www.linkedin.com/company/b"]
