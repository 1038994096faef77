"""Tests for the GitHub client helpers and the cached get_url task"""

import pytest
from prefect import flow

from flowtour import github
from flowtour.github import build_client, get_url, page_count, repo_url


@pytest.mark.unit
class TestPageCount:
    """Tests for page_count"""

    @pytest.mark.parametrize(
        "total,per_page,expected",
        [(0, 100, 0), (1, 100, 1), (100, 100, 1), (101, 100, 2), (5, 2, 3)],
    )
    def test_ceiling_division(self, total, per_page, expected):
        assert page_count(total, per_page) == expected

    def test_non_positive_page_size_raises(self):
        with pytest.raises(ValueError):
            page_count(10, 0)


@pytest.mark.unit
class TestRepoUrl:
    """Tests for repo_url"""

    def test_builds_repo_endpoint(self):
        assert repo_url("https://api.github.com/", "PrefectHQ/prefect") == (
            "https://api.github.com/repos/PrefectHQ/prefect"
        )

    @pytest.mark.parametrize("name", ["prefect", "a/b/c", ""])
    def test_rejects_malformed_names(self, name):
        with pytest.raises(ValueError):
            repo_url("https://api.github.com", name)


@pytest.mark.unit
class TestBuildClient:
    """Tests for build_client"""

    def test_default_headers(self, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        with build_client() as client:
            assert client.headers["Accept"] == "application/vnd.github+json"
            assert "Authorization" not in client.headers

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")

        with build_client() as client:
            assert client.headers["Authorization"] == "Bearer env-token"

    def test_explicit_token_wins(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")

        with build_client(token="explicit") as client:
            assert client.headers["Authorization"] == "Bearer explicit"


@flow
def fetch_twice(url: str):
    first = get_url(url, return_state=True)
    second = get_url(url, return_state=True)
    return [first.name, second.name], second.result()


@flow
def fetch_once_no_retry(url: str):
    state = get_url.with_options(retries=1, retry_delay_seconds=0)(url, return_state=True)
    return state.is_failed()


@pytest.mark.flows
class TestGetUrl:
    """Tests for the get_url task"""

    def test_second_call_is_served_from_cache(self, fake_github, api_url, repo_name):
        states, body = fetch_twice(repo_url(api_url, repo_name))

        assert states == ["Completed", "Cached"]
        assert body["full_name"] == repo_name
        assert len(fake_github.requests) == 1

    def test_http_error_is_retried_then_fails(self, fake_github, api_url, repo_name):
        fake_github.fail_with = 502

        failed = fetch_once_no_retry(repo_url(api_url, repo_name))

        assert failed is True
        assert len(fake_github.requests) == 2

    def test_mock_transport_is_used(self, fake_github):
        assert github.transport is not None
