"""Exceptions raised while harvesting from the Plaud web app."""


class HarvestError(Exception):
    """Base exception for harvesting errors. Aborts the run."""

    pass


class SourceLoginError(HarvestError):
    """Logging into Plaud failed."""

    pass


class NoRecordingsError(HarvestError):
    """Neither network payloads nor the DOM yielded any recording."""

    pass
