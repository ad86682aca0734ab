# daily_overview/exceptions.py


class OverviewError(Exception):
    """
    Base class for every error raised by the daily overview engine.
    """
    pass


class SourceFetchError(OverviewError):
    """
    A required source (viewer identity, building list, course listing)
    could not be fetched or decoded. Fails the whole aggregation pass.
    """

    def __init__(self, source: str, message: str, url: str = None):
        self.source = source
        self.url = url
        detail = f"{source}: {message}"
        if url:
            detail = f"{detail} ({url})"
        super().__init__(detail)


class DetailFetchError(OverviewError):
    """
    A single schooling detail page could not be fetched.
    Absorbed by the membership resolver; the course is treated as not relevant.
    """

    def __init__(self, source_ref: str, cause: BaseException):
        self.source_ref = source_ref
        self.cause = cause
        super().__init__(f"detail fetch failed for {source_ref}: {cause}")


class MalformedRecordError(OverviewError):
    """
    An individual raw record is missing or has unusable fields.
    Raised by per-record normalizers and absorbed by normalize().
    """
    pass
