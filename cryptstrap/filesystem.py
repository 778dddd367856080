"""Filesystem creation, btrfs subvolumes and target mounts."""
from __future__ import annotations

import os

from .executil import run, trace
from .model import InstallConfig, Mounts

BTRFS_OPTS = "noatime,compress=zstd"
ESP_DIR = "efi"


def format_filesystems(esp: str, mapper: str, dry_run: bool = False):
    run(["mkfs.fat", "-F", "32", "-n", "ESP", esp], check=True, dry_run=dry_run, timeout=120.0)
    run(["mkfs.btrfs", "-f", "-L", "root", mapper], check=True, dry_run=dry_run, timeout=120.0)


def create_subvolumes(mapper: str, mnt: str, subvolumes, dry_run: bool = False) -> list[str]:
    """Create each subvolume at the top level of the btrfs filesystem."""

    run(["mount", mapper, mnt], check=True, dry_run=dry_run)
    created = []
    try:
        for name, _target in subvolumes:
            run(["btrfs", "subvolume", "create", os.path.join(mnt, name)], check=True, dry_run=dry_run)
            created.append(name)
    finally:
        run(["umount", mnt], check=False, dry_run=dry_run)
    trace("filesystem.subvolumes", created=created)
    return created


def _mount_order(subvolumes) -> list[tuple[str, str]]:
    # parents before children: "/" first, then by depth
    return sorted(subvolumes, key=lambda sv: (sv[1] != "/", sv[1].count("/"), sv[1]))


def mount_filesystems(config: InstallConfig, esp: str, dry_run: bool = False) -> Mounts:
    mnt = config.mount_point
    mounted = []
    for name, target in _mount_order(config.subvolumes):
        where = os.path.normpath(os.path.join(mnt, target.lstrip("/")))
        if target != "/":
            run(["mkdir", "-p", where], check=True, dry_run=dry_run)
        run(
            ["mount", "-o", f"{BTRFS_OPTS},subvol={name}", config.mapper_path, where],
            check=True,
            dry_run=dry_run,
        )
        mounted.append(where)
    esp_dir = os.path.join(mnt, ESP_DIR)
    run(["mkdir", "-p", esp_dir], check=True, dry_run=dry_run)
    run(["mount", "-o", "umask=0077", esp, esp_dir], check=True, dry_run=dry_run)
    trace("filesystem.mounted", mounts=mounted, esp=esp_dir)
    return Mounts(mnt=mnt, esp=esp_dir, subvolumes=mounted)


def unmount_all(mnt: str, dry_run: bool = False):
    run(["umount", "-R", mnt], check=True, dry_run=dry_run)
