"""
Error taxonomy for the backlog coordinator
"""


class BacklogError(Exception):
    """Base class for coordinator errors"""


class ConfigurationError(BacklogError, ValueError):
    """Invalid filter, comparator, module reference or configuration value"""


class StoreUnavailableError(BacklogError):
    """A shared queue store operation failed"""


class SourceQueryError(BacklogError):
    """A discovery or count query against the source system failed"""
