"""Error taxonomy raised across the resolver and intelligence engines."""


class GavlensError(Exception):
    """Base class for structural input errors that abort a call."""


class InvalidModelError(GavlensError, ValueError):
    """Manifest text is malformed or lacks required coordinates."""


class InvalidRepositoryError(GavlensError, ValueError):
    """Custom repository URL is unacceptable, or too many were supplied."""


class OversizeInputError(GavlensError, ValueError):
    """Manifest text exceeds the accepted size cap."""


class NotFoundError(GavlensError, LookupError):
    """Requested coordinate is unknown upstream."""


class InvalidQueryError(GavlensError, ValueError):
    """Search query is blank or paging arguments are out of range."""


class RegistryUnavailableError(GavlensError):
    """The registry search service could not be reached or answered badly."""
