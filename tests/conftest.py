import pytest

from contributions.errors import QueryError
from contributions.models import ContributionsCollection


def repo_node(name_with_owner, is_private=False):
    return {
        "nameWithOwner": name_with_owner,
        "url": f"https://github.com/{name_with_owner}",
        "isPrivate": is_private,
    }


def pull_request_page(names, has_next_page=False, end_cursor=None):
    return {
        "pullRequestContributions": {
            "pageInfo": {"hasNextPage": has_next_page, "endCursor": end_cursor},
            "nodes": [{"pullRequest": {"repository": repo_node(name)}} for name in names],
        }
    }


def commit_result(names):
    return {
        "commitContributionsByRepository": [
            {"repository": repo_node(name)} for name in names
        ]
    }


class FakeService:
    """Stands in for GitHubService, answering queries per year from canned collections."""

    def __init__(self, pull_requests=None, commits=None, fail_on=None):
        # year -> list of raw pullRequestContributions pages / commit results
        self.pull_requests = pull_requests or {}
        self.commits = commits or {}
        self.fail_on = fail_on
        self.calls = []
        self.closed = False

    async def fetch_contributions(self, query, variables):
        year = int(variables["from"][:4])
        kind = "pull_request" if "pullRequestContributions" in query else "commit"
        self.calls.append((kind, year, dict(variables)))

        if self.fail_on == (kind, year):
            raise QueryError("Something went wrong")

        if kind == "pull_request":
            pages = self.pull_requests.get(year, [pull_request_page([])])
            index = len([c for c in self.calls if c[:2] == (kind, year)]) - 1
            return ContributionsCollection.model_validate(pages[index])
        return ContributionsCollection.model_validate(
            self.commits.get(year, commit_result([]))
        )

    async def close(self):
        self.closed = True

    def pull_request_calls(self, year=None):
        return [c for c in self.calls if c[0] == "pull_request" and year in (None, c[1])]

    def commit_calls(self, year=None):
        return [c for c in self.calls if c[0] == "commit" and year in (None, c[1])]


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Run without GitHub settings from the real environment or a local .env file."""
    for name in ("GITHUB_TOKEN", "GITHUB_API_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch
