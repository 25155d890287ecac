"""Error taxonomy shared by the matching, graph and tailoring components.

Each error carries a ``kind`` string that API consumers can switch on and a
``retryable`` flag telling the caller whether repeating the same request can
succeed.
"""


class IdynicError(Exception):
    """Base class for all core errors."""

    kind = "internal"
    retryable = False

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "retryable": self.retryable}


class InputValidationError(IdynicError):
    """Malformed or missing input."""

    kind = "validation"


class NotFoundError(IdynicError):
    """Unknown opportunity, claim or profile."""

    kind = "not_found"

    def __init__(self, resource: str, resource_id: str | None = None):
        message = f"{resource} not found" if resource_id is None else f"{resource} {resource_id} not found"
        super().__init__(message, resource=resource, resource_id=resource_id)
        self.resource = resource
        self.resource_id = resource_id


class RetrievalError(IdynicError):
    """The evidence store could not be read at all.

    Per-query vector search failures never raise this; they degrade to
    partial results.
    """

    kind = "retrieval_failure"
    retryable = True


class GenerationError(IdynicError):
    """A tailored profile pipeline step failed; nothing was persisted."""

    kind = "generation_failure"
    retryable = True

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message, step=step)
        self.step = step


class ConflictError(IdynicError):
    """A uniqueness constraint rejected an insert.

    Callers should re-read the existing row instead of surfacing this as a
    user error.
    """

    kind = "conflict"
    retryable = True
