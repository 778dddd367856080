"""Base system bootstrap and first-boot configuration files."""

from __future__ import annotations

import os

from .executil import run, trace
from .model import InstallConfig

PACSTRAP_TIMEOUT = 3600


def _write(path: str, text: str) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(text)
        fh.flush()
        os.fsync(fh.fileno())
    return path


def pacstrap(config: InstallConfig, dry_run: bool = False):
    cmd = ["pacstrap", "-K", config.mount_point] + config.package_list()
    run(cmd, check=True, dry_run=dry_run, timeout=PACSTRAP_TIMEOUT)


def write_fstab(mnt: str, dry_run: bool = False) -> str | None:
    res = run(["genfstab", "-U", mnt], check=True, dry_run=dry_run)
    if dry_run:
        return None
    if not (res.out or "").strip():
        raise RuntimeError("genfstab produced no entries")
    path = os.path.join(mnt, "etc", "fstab")
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(res.out if res.out.endswith("\n") else res.out + "\n")
    return path


def write_hostname(mnt: str, hostname: str, dry_run: bool = False) -> str | None:
    if dry_run:
        trace("bootstrap.hostname.skipped", hostname=hostname)
        return None
    return _write(os.path.join(mnt, "etc", "hostname"), f"{hostname}\n")
