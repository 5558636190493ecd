class VacancySourceError(Exception):
    """Base exception for upstream vacancy sources."""

    pass


class UpstreamValidationError(VacancySourceError):
    """Structured endpoint answered, but with a non-zero status code."""

    def __init__(self, status: object) -> None:
        super().__init__(f"Upstream returned error status: {status}")
        self.status = status


class TransportError(VacancySourceError):
    """Network failure, timeout, bad HTTP status or failed page navigation."""

    pass


class ContentTimeout(VacancySourceError):
    """Vacancy markup did not appear in time. Never fatal for a page load."""

    pass
