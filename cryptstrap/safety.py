"""Refuse targets that back the running system."""

from __future__ import annotations

import os
import subprocess

from .errors import LiveDiskError


def _capture(cmd: list[str]) -> str:
    try:
        return subprocess.check_output(cmd, text=True).strip()
    except (OSError, subprocess.CalledProcessError):
        return ""


def _parent_disk(mountpoint: str) -> str:
    src = _capture(["findmnt", "-no", "SOURCE", mountpoint])
    if not src:
        return ""
    return _capture(["lsblk", "-no", "PKNAME", src])


def guard_not_live_disk(device: str) -> tuple[bool, str]:
    """
    Compare ``device`` with the parent disks of ``/`` and ``/boot``.
    Returns (ok, reason).
    """

    devname = os.path.basename(device.rstrip("/"))
    for live in (_parent_disk("/"), _parent_disk("/boot")):
        live = live.splitlines()[0].strip() if live else ""
        if live and live == devname:
            return False, f"Target {device} looks like live disk ({live})."
    return True, ""


def require_not_live_disk(device: str) -> None:
    ok, reason = guard_not_live_disk(device)
    if not ok:
        raise LiveDiskError(reason)
