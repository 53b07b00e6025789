from __future__ import annotations


class NotFoundError(LookupError):
    """Raised when a survey id does not resolve to a stored survey."""

    def __init__(self, survey_id: object):
        super().__init__(f'Survey not found: {survey_id}')
        self.survey_id = survey_id


class ImageFetchError(Exception):
    """A single photo could not be fetched or decoded.

    Never propagated past the fetcher: it travels inside a ``FetchResult`` and the
    renderer draws a placeholder in its place.
    """

    def __init__(self, url: str, reason: str):
        super().__init__(f'{reason} ({url})')
        self.url = url
        self.reason = reason


class RenderError(RuntimeError):
    """Unexpected failure while building a report document."""
