"""Interactive gates: masked secret double entry and the yes/no confirmation."""

from __future__ import annotations

import sys
from getpass import getpass

from .errors import DeclinedConfirmationError, EmptyInputError, MismatchError
from .executil import trace
from .model import SecretInput

AFFIRMATIVE = frozenset({"y", "yes"})


def _say(message: str) -> None:
    print(message, file=sys.stderr, flush=True)


def read_confirmed_secret(label: str = "passphrase") -> SecretInput:
    """Read ``label`` twice with echo disabled.

    Raises ``EmptyInputError`` when the first entry is empty and
    ``MismatchError`` when the confirmation differs. Callers restart from the
    first read after either.
    """

    first = getpass(f"Enter {label}: ")
    if not first:
        _say(f"The {label} cannot be empty.")
        raise EmptyInputError(f"empty {label}")
    second = getpass(f"Confirm {label}: ")
    if first != second:
        _say(f"The {label} entries do not match.")
        raise MismatchError(f"{label} mismatch")
    return SecretInput(value=first, confirmed=True)


def prompt_secret(label: str = "passphrase") -> SecretInput:
    attempts = 0
    while True:
        attempts += 1
        try:
            secret = read_confirmed_secret(label)
        except (EmptyInputError, MismatchError) as exc:
            trace("prompts.secret.retry", attempt=attempts, reason=type(exc).__name__)
            continue
        trace("prompts.secret.confirmed", attempts=attempts)
        return secret


def confirm(description: str) -> bool:
    _say(description)
    try:
        reply = input("Proceed? [y/N]: ")
    except EOFError:
        return False
    return reply.strip().casefold() in AFFIRMATIVE


def require_confirmation(description: str, assume_yes: bool = False) -> None:
    """Stop the run unless the operator affirms ``description``."""

    if assume_yes:
        trace("prompts.confirm", decision=True, assumed=True)
        return
    decision = confirm(description)
    trace("prompts.confirm", decision=decision, assumed=False)
    if not decision:
        headline = (description.strip().splitlines() or ["destructive action"])[0]
        raise DeclinedConfirmationError(f"operator declined: {headline}")
