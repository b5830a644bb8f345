"""
Collects the external repositories a user contributed to, one calendar year at a time.
Pull request contributions are paginated; commit contributions come from a single
capped query. Private repositories and the user's own repositories are skipped.
Requests are issued strictly one after another, and any failure aborts the run.
"""

import logging
from datetime import MAXYEAR, MINYEAR, datetime, timezone
from typing import AsyncIterator, Iterable

import ujson
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError, QueryError
from .models import (
    ContributionReport,
    PullRequestContributions,
    Repository,
    YearlyContributionSet,
)
from .service import GitHubService


class CollectorConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="CONTRIBUTIONS_", extra="ignore"
    )

    # GitHub GraphQL max per query
    page_size: int = 100
    max_repositories: int = 100


PULL_REQUEST_QUERY = """
query ($login: String!, $from: DateTime!, $to: DateTime!, $first: Int!, $after: String) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      pullRequestContributions(first: $first, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          pullRequest {
            repository {
              nameWithOwner
              url
              isPrivate
            }
          }
        }
      }
    }
  }
}
"""

COMMIT_QUERY = """
query ($login: String!, $from: DateTime!, $to: DateTime!, $maxRepositories: Int!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      commitContributionsByRepository(maxRepositories: $maxRepositories) {
        repository {
          nameWithOwner
          url
          isPrivate
        }
      }
    }
  }
}
"""


def year_window(year: int) -> tuple[datetime, datetime]:
    """Half-open [start, end) window covering one calendar year in UTC."""
    if not MINYEAR <= year < MAXYEAR:
        raise ConfigurationError(f"Year {year} is out of range ({MINYEAR}-{MAXYEAR - 1})")
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )


def format_datetime(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def window_variables(username: str, year: int) -> dict:
    start, end = year_window(year)
    return {
        "login": username,
        "from": format_datetime(start),
        "to": format_datetime(end),
    }


async def iter_pull_request_pages(
    service: GitHubService, username: str, year: int, page_size: int = 100
) -> AsyncIterator[PullRequestContributions]:
    cursor = None
    while True:
        variables = {
            **window_variables(username, year),
            "first": page_size,
            "after": cursor,
        }
        collection = await service.fetch_contributions(PULL_REQUEST_QUERY, variables)
        page = collection.pull_request_contributions
        if page is None:
            raise QueryError("Response is missing pullRequestContributions")

        yield page

        if not page.page_info.has_next_page:
            break
        cursor = page.page_info.end_cursor


async def fetch_commit_repositories(
    service: GitHubService, username: str, year: int, max_repositories: int = 100
) -> list[Repository]:
    variables = {
        **window_variables(username, year),
        "maxRepositories": max_repositories,
    }
    collection = await service.fetch_contributions(COMMIT_QUERY, variables)
    if collection.commit_contributions_by_repository is None:
        raise QueryError("Response is missing commitContributionsByRepository")
    return [node.repository for node in collection.commit_contributions_by_repository]


def add_external_repositories(
    repos: YearlyContributionSet, repositories: Iterable[Repository], username: str
):
    for repo in repositories:
        if repo.is_external_to(username):
            repos[repo.name_with_owner] = repo.url


async def collect_contributions(
    service: GitHubService,
    username: str,
    start_year: int,
    end_year: int,
    config: CollectorConfig | None = None,
) -> ContributionReport:
    if not username:
        raise ConfigurationError("Missing required flag: --username")
    if start_year <= end_year:
        # Reject an out-of-range year before issuing any request
        year_window(start_year)
        year_window(end_year)
    config = config or CollectorConfig()

    logging.info(f"Collecting contributions for {username} from {start_year} to {end_year}...")

    repos_by_year: ContributionReport = {}

    for year in range(start_year, end_year + 1):
        logging.info(f"Processing year {year}...")
        repos: YearlyContributionSet = {}

        try:
            page_count = 0
            async for page in iter_pull_request_pages(
                service, username, year, config.page_size
            ):
                page_count += 1
                add_external_repositories(repos, page.repositories(), username)
                logging.info(f"Fetched pull request page {page_count} for {year}")
        except QueryError as e:
            raise QueryError(f"Pull request query failed for year {year}: {e}") from e

        try:
            commit_repos = await fetch_commit_repositories(
                service, username, year, config.max_repositories
            )
        except QueryError as e:
            raise QueryError(f"Commit query failed for year {year}: {e}") from e
        add_external_repositories(repos, commit_repos, username)

        logging.info(f"Found {len(repos)} external repositories for {year}")
        if repos:
            repos_by_year[year] = repos

    return repos_by_year


def report_to_json(report: ContributionReport) -> str:
    return ujson.dumps(
        {str(year): repos for year, repos in report.items()},
        escape_forward_slashes=False,
        sort_keys=True,
    )
