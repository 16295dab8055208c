"""Error taxonomy for ccprof.

Every failure surfaced by the core is one of these exceptions. Callers (the
CLI) distinguish them by type:

- NotFoundError: referenced profile, component or backup is absent
- AlreadyExistsError: creation or rename collision
- CorruptedError: manifest unreadable or managed component missing on disk
- IoFailureError: permission, disk-full or lock errors (OSError attached)
- InvalidInputError: illegal name or empty selection, rejected before any mutation

Each error may carry a hint naming the command that fixes the situation.
"""


class CcprofError(Exception):
    """Base class for all ccprof errors."""

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


class NotFoundError(CcprofError):
    """Raised when a referenced profile, component or backup does not exist."""


class AlreadyExistsError(CcprofError):
    """Raised when creating or renaming would collide with an existing entity."""


class CorruptedError(CcprofError):
    """Raised when on-disk data contradicts its manifest or cannot be parsed."""


class IoFailureError(CcprofError):
    """Raised when a filesystem operation fails.

    The underlying OSError is chained as ``__cause__``.
    """


class InvalidInputError(CcprofError):
    """Raised when user input is rejected before touching the filesystem."""


class ProfileActiveError(InvalidInputError):
    """Raised when an operation is not allowed on the active profile."""


class PartialActivationError(IoFailureError):
    """Raised when activation fails after some components were already switched.

    Attributes:
        profile: Profile being activated
        component: Short name of the component that failed
        switched: Short names of components switched before the failure
    """

    def __init__(
        self,
        profile: str,
        component: str,
        switched: list[str],
        reason: str,
    ):
        done = ", ".join(switched) if switched else "none"
        super().__init__(
            f"Activation of profile '{profile}' partially applied: "
            f"component '{component}' failed: {reason}\n"
            f"Already switched: {done}",
            hint=f"Fix the reported issue and re-run 'ccprof use {profile}'.",
        )
        self.profile = profile
        self.component = component
        self.switched = switched


__all__ = [
    "AlreadyExistsError",
    "CcprofError",
    "CorruptedError",
    "InvalidInputError",
    "IoFailureError",
    "NotFoundError",
    "PartialActivationError",
    "ProfileActiveError",
]
