"""Exception types raised across cpt subsystem boundaries.

Library code raises these; only the CLI layer turns them into
operator-facing messages and exit codes.
"""


class CptError(Exception):
    """Base class for all cpt errors."""


class ConfigurationError(CptError):
    """Raised when no usable database connection can be configured."""


class SchemaCompatibilityError(CptError):
    """Raised when the connected database lacks the engine tables cpt operates on."""


class FilterValidationError(CptError, ValueError):
    """Raised when a search filter fails validation before query composition."""


class AgeFormatError(CptError, ValueError):
    """Raised when a retention age expression cannot be parsed or is not positive."""


class UnknownStateError(CptError, ValueError):
    """Raised when a state name is not part of the state vocabulary."""


class StateIndexError(CptError, IndexError):
    """Raised when a stored state index is outside the state vocabulary."""


class AuditDecodeError(CptError, ValueError):
    """Raised when a transit-encoded audit message cannot be decoded.

    Callers listing audit trails skip the affected entry instead of aborting.
    """
