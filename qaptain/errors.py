"""Exception taxonomy for the test engine.

Fatal errors (``ExtractionError``, ``GenerationError``, ``LaunchError``)
escape the scenario runner and fail the whole run. The per-step errors
(``InterpretationAmbiguity``, ``ExecutionFailure``) never do: the runner
records them as Skipped / Failed step results.
"""


class QaptainError(Exception):
    """Base class for engine errors."""

    fatal = False

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details or message


class GuardError(QaptainError):
    """Raised when a run request is rejected before any browser work."""


class LaunchError(QaptainError):
    """No browser binary could be resolved or launched."""

    fatal = True


class ExtractionError(QaptainError):
    """The target page was unreachable or never settled."""

    fatal = True


class GenerationError(QaptainError):
    """The scenario oracle was unavailable or returned garbage."""

    fatal = True


class InterpretationAmbiguity(QaptainError):
    """A step matched no known verb pattern."""


class ExecutionFailure(QaptainError):
    """An action could not be applied to the page."""


class TargetNotFound(ExecutionFailure):
    """The selector hint resolved to no visible element."""

    def __init__(self, hint: str):
        super().__init__("target not found", details=f"No visible element matches '{hint}'")
        self.hint = hint


class CapacityExceeded(QaptainError):
    """Too many runs are already in progress."""


class NoUsableForms(QaptainError):
    """The page has no forms, so there is nothing to generate scenarios for."""

    def __init__(self, url: str):
        super().__init__("no usable forms", details=f"No <form> elements found on {url}")
        self.url = url
