class ContributionsError(Exception):
    """Base class for errors that should terminate a collection run."""


class ConfigurationError(ContributionsError):
    pass


class QueryError(ContributionsError):
    pass
