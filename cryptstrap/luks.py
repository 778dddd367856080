"""LUKS2 container lifecycle.

The passphrase is handed to ``cryptsetup`` on standard input
(``--key-file -``); it never appears in an argument vector, a temp file or
the trace log.
"""

from __future__ import annotations

from .executil import run, udev_settle
from .model import SecretInput


def _require_secret(secret: SecretInput | None, dry_run: bool) -> str | None:
    if dry_run:
        return None
    if secret is None or not secret.confirmed or not secret.value:
        raise ValueError("cryptsetup requires a confirmed passphrase")
    return secret.value


def format_luks(root: str, secret: SecretInput | None, dry_run: bool = False):
    value = _require_secret(secret, dry_run)
    cmd = [
        "cryptsetup",
        "--batch-mode",
        "luksFormat",
        "--type",
        "luks2",
        "--key-file",
        "-",
        root,
    ]
    run(cmd, check=True, dry_run=dry_run, timeout=360.0, input_text=value)
    udev_settle()


def open_luks(root: str, name: str, secret: SecretInput | None, dry_run: bool = False):
    value = _require_secret(secret, dry_run)
    cmd = ["cryptsetup", "open", "--key-file", "-", "--allow-discards", root, name]
    run(cmd, check=True, dry_run=dry_run, timeout=120.0, input_text=value)
    udev_settle()


def close_luks(name: str, dry_run: bool = False):
    run(["cryptsetup", "close", name], check=True, dry_run=dry_run, timeout=60.0)


def setup_encryption(root: str, name: str, secret: SecretInput | None, dry_run: bool = False):
    """Format ``root`` and open it as ``/dev/mapper/<name>``, then drop the secret."""

    try:
        format_luks(root, secret, dry_run=dry_run)
        open_luks(root, name, secret, dry_run=dry_run)
    finally:
        if secret is not None:
            secret.clear()
