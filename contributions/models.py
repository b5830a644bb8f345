from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field


class GraphQLModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Repository(GraphQLModel):
    name_with_owner: str = Field(alias="nameWithOwner")
    url: str
    is_private: bool = Field(alias="isPrivate")

    def is_external_to(self, username: str) -> bool:
        return not self.is_private and not self.name_with_owner.startswith(
            f"{username}/"
        )


class PageInfo(GraphQLModel):
    has_next_page: bool = Field(alias="hasNextPage")
    end_cursor: str | None = Field(alias="endCursor")


class PullRequest(GraphQLModel):
    repository: Repository


class PullRequestContribution(GraphQLModel):
    pull_request: PullRequest = Field(alias="pullRequest")


class PullRequestContributions(GraphQLModel):
    page_info: PageInfo = Field(alias="pageInfo")
    # Nodes can be null when the viewer lacks access to the pull request
    nodes: list[PullRequestContribution | None]

    def repositories(self) -> Iterator[Repository]:
        return (node.pull_request.repository for node in self.nodes if node)


class CommitContribution(GraphQLModel):
    repository: Repository


class ContributionsCollection(GraphQLModel):
    pull_request_contributions: PullRequestContributions | None = Field(
        default=None, alias="pullRequestContributions"
    )
    commit_contributions_by_repository: list[CommitContribution] | None = Field(
        default=None, alias="commitContributionsByRepository"
    )


class User(GraphQLModel):
    contributions_collection: ContributionsCollection = Field(
        alias="contributionsCollection"
    )


# Repository full name -> URL, for a single year
YearlyContributionSet = dict[str, str]
ContributionReport = dict[int, YearlyContributionSet]
