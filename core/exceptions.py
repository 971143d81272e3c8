"""Custom exception hierarchy for the request mutator."""


class MutatorError(Exception):
    """Base exception for all request mutator errors."""


class TemplateError(MutatorError):
    """Raised when a template request cannot be built from its source."""


class MutationError(MutatorError):
    """A single mutation could not be applied.

    The assembler logs these and skips the mutation; the rest of the
    sequence is unaffected.

    Attributes:
        message: Error message
        part: Request part the mutation targeted (optional)
        key: Field key the mutation targeted (optional)
    """

    def __init__(
        self,
        message: str,
        part: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.part = part
        self.key = key


class EncoderError(MutationError):
    """Raised when a body encoder cannot produce its output."""


class PathError(MutationError):
    """Raised when a structured document cannot be accessed by path."""


class PathParseError(PathError):
    """Path expression is syntactically invalid."""


class PathSetError(PathError):
    """Path expression does not resolve inside the document."""


class PartMutationError(MutationError):
    """Mutated non-body part cannot form a valid request."""


class RequestBuildError(MutatorError):
    """Raised when the template itself cannot form a request.

    Unlike MutationError this aborts the remaining mutation sequence.
    """
