"""Error kinds raised by the guarded provisioning sequence."""

from __future__ import annotations


class InstallError(RuntimeError):
    """Base class for installer failures."""


class EmptyInputError(InstallError):
    """The secret prompt received an empty value."""


class MismatchError(InstallError):
    """The two secret entries differ."""


class NoEligibleDeviceError(InstallError):
    """No block device matched the eligible naming pattern."""


class DeclinedConfirmationError(InstallError):
    """The operator did not affirm the destructive action."""


class LiveDiskError(InstallError):
    """The target disk backs the running system."""


class StepFailure(InstallError):
    """A provisioning step failed; completed steps are not undone."""

    verb = "failed"

    def __init__(self, step_name: str, cause: BaseException, completed: list[str] | None = None) -> None:
        detail = f": {cause}" if str(cause) else ""
        super().__init__(f"step {step_name!r} {self.verb}{detail}")
        self.step_name = step_name
        self.cause = cause
        self.completed = list(completed or [])


class StepAborted(StepFailure):
    """The operator interrupted a step (Ctrl-C or end of input)."""

    verb = "interrupted"
