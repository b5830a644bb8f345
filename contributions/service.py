import asyncio
import logging
import time

import aiohttp
import ujson
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError, QueryError
from .models import ContributionsCollection, User


class GitHubConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="GITHUB_", extra="ignore"
    )

    api_url: str = "https://api.github.com/graphql"
    token: str

    @field_validator("token")
    @classmethod
    def token_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("token must not be empty")
        return value


def load_github_config() -> GitHubConfig:
    try:
        return GitHubConfig()
    except ValidationError as e:
        raise ConfigurationError("GITHUB_TOKEN environment variable is not set") from e


class GitHubService:
    def __init__(self, config: GitHubConfig, session: aiohttp.ClientSession):
        self.settings = config
        self.session = session

    @classmethod
    async def create(cls, config: GitHubConfig | None = None):
        config = config or load_github_config()
        session = aiohttp.ClientSession(json_serialize=ujson.dumps)
        return cls(config, session)

    async def close(self):
        await self.session.close()

    async def fetch_contributions(
        self,
        query: str,
        variables: dict,
    ) -> ContributionsCollection:
        data = await self.execute_github_query(query, variables)
        if data.get("user") is None:
            raise QueryError(f"GitHub user '{variables.get('login')}' not found")
        try:
            return User.model_validate(data["user"]).contributions_collection
        except ValidationError as e:
            raise QueryError(f"Unexpected response shape: {e}") from e

    async def execute_github_query(self, query: str, variables: dict) -> dict:
        try:
            logging.info("Attempting query...")

            request_start = time.time()
            async with self.session.post(
                self.settings.api_url,
                json={"query": query, "variables": variables},
                headers={"Authorization": f"Bearer {self.settings.token}"},
            ) as response:
                logging.info(f"Query time: {time.time() - request_start:.2f}s")
                if response.status != 200:
                    raise QueryError(
                        f"GitHub API returned {response.status}: {await response.text()}"
                    )

                result = await response.json(loads=ujson.loads)

                rate_limit = response.headers.get("x-ratelimit-remaining")
                reset_at = response.headers.get("x-ratelimit-reset")
                if rate_limit and reset_at:
                    logging.debug(f"Rate limit remaining: {rate_limit}, resets at {reset_at}")
        except aiohttp.ClientError as e:
            raise QueryError(f"Request to GitHub API failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise QueryError("Request to GitHub API timed out") from e
        except ValueError as e:
            raise QueryError(f"GitHub API returned invalid JSON: {e}") from e

        if not isinstance(result, dict):
            raise QueryError(f"GitHub API returned unexpected body: {result!r}")
        if result.get("errors"):
            raise QueryError(f"GitHub API returned errors: {result['errors']}")
        if not isinstance(result.get("data"), dict):
            raise QueryError("GitHub API response contained no data")
        return result["data"]
