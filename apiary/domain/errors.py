"""
Domain Errors

Architectural Intent:
- Single taxonomy for everything that can go wrong during an apply run
- Run-level errors (selection, construction, hive) propagate to the CLI
- Per-task errors (transfer, activation) are raised by RemoteHostPort
  implementations and captured into TaskOutcome by the executor
"""


class ApiaryError(Exception):
    """Base class for all apiary errors."""


class SelectionEmptyError(ApiaryError):
    """No hive node matched the selector; nothing was scheduled."""

    def __init__(self, filter_expr: str = "") -> None:
        self.filter_expr = filter_expr
        if filter_expr:
            super().__init__(f"No hosts matched {filter_expr!r}")
        else:
            super().__init__("No hosts matched")


class ConstructionError(ApiaryError, ValueError):
    """Programmer or configuration error: duplicate task names, bad goal token."""


class InvalidTransitionError(ApiaryError):
    """A task pipeline was asked to make a transition its state does not allow."""


class HiveError(ApiaryError):
    """The hive could not be evaluated or its configurations could not be built."""


class TransferError(ApiaryError):
    """Copying a closure to a host failed."""


class ActivationError(ApiaryError):
    """Activating a closure on a host failed."""
