"""
Pytest configuration and fixtures for flowtour tests
"""

import os
import uuid
from typing import Dict, List

import httpx
import pytest
from prefect.settings import PREFECT_LOCAL_STORAGE_PATH, temporary_settings
from prefect.testing.utilities import prefect_test_harness

os.environ.setdefault("FLOWTOUR_LOG_LEVEL", "DEBUG")
os.environ.pop("GITHUB_TOKEN", None)


@pytest.fixture(autouse=True, scope="session")
def prefect_backend():
    """Run every flow against a throwaway Prefect API and database"""
    with prefect_test_harness():
        yield


@pytest.fixture(autouse=True)
def result_storage(tmp_path_factory):
    """Keep cached results of one test from leaking into the next"""
    storage = tmp_path_factory.mktemp("prefect-results")
    with temporary_settings(updates={PREFECT_LOCAL_STORAGE_PATH: storage}):
        yield storage


class FakeGitHub:
    """In-memory stand-in for the parts of the GitHub REST API the lessons use"""

    def __init__(self, issues: List[Dict], stars: int = 42, forks: int = 7):
        self.issues = issues
        self.stars = stars
        self.forks = forks
        self.requests: List[httpx.Request] = []
        self.fail_with: int | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"message": "boom"})
        parts = request.url.path.strip("/").split("/")
        if len(parts) == 3 and parts[0] == "repos":
            return httpx.Response(
                200,
                json={
                    "full_name": f"{parts[1]}/{parts[2]}",
                    "open_issues_count": len(self.issues),
                    "stargazers_count": self.stars,
                    "forks_count": self.forks,
                },
            )
        if len(parts) == 4 and parts[0] == "repos" and parts[3] == "issues":
            page = int(request.url.params.get("page", 1))
            per_page = int(request.url.params.get("per_page", 30))
            start = (page - 1) * per_page
            return httpx.Response(200, json=self.issues[start : start + per_page])
        return httpx.Response(404, json={"message": "Not Found"})

    def issue_pages_requested(self) -> List[int]:
        return sorted(
            int(r.url.params["page"]) for r in self.requests if r.url.path.endswith("/issues")
        )


def make_issues(users: List[str]) -> List[Dict]:
    return [
        {"number": n, "title": f"Issue {n}", "user": {"login": user}}
        for n, user in enumerate(users, start=1)
    ]


@pytest.fixture
def fake_github(monkeypatch) -> FakeGitHub:
    """Route every GitHub request through a FakeGitHub instance"""
    from flowtour import github

    fake = FakeGitHub(make_issues(["alice", "bob", "alice", "carol", "alice"]))
    monkeypatch.setattr(github, "transport", httpx.MockTransport(fake.handler))
    return fake


@pytest.fixture
def repo_name() -> str:
    """A repository name no other test uses, so cached responses never match"""
    return f"acme/widgets-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def api_url() -> str:
    return "https://api.github.test"
