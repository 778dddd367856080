"""Secure-boot key enrollment, image signing and the firmware boot entry."""

from __future__ import annotations

from .executil import run

SBCTL_TIMEOUT = 300.0


def _chroot(mnt: str, *args: str) -> list[str]:
    return ["arch-chroot", mnt, *args]


def uki_target_path(uki_name: str) -> str:
    return f"/efi/EFI/Linux/{uki_name}"


def uki_loader_path(uki_name: str) -> str:
    return "\\EFI\\Linux\\" + uki_name


def enroll_keys(mnt: str, microsoft_keys: bool = True, dry_run: bool = False):
    """Create owner keys and enroll them; firmware must be in setup mode."""

    run(_chroot(mnt, "sbctl", "create-keys"), check=True, dry_run=dry_run, timeout=SBCTL_TIMEOUT)
    enroll = _chroot(mnt, "sbctl", "enroll-keys")
    if microsoft_keys:
        enroll.append("--microsoft")
    run(enroll, check=True, dry_run=dry_run, timeout=SBCTL_TIMEOUT)


def sign_image(mnt: str, uki_name: str, dry_run: bool = False):
    run(
        _chroot(mnt, "sbctl", "sign", "--save", uki_target_path(uki_name)),
        check=True,
        dry_run=dry_run,
        timeout=SBCTL_TIMEOUT,
    )


def enroll_and_sign(mnt: str, uki_name: str, microsoft_keys: bool = True, dry_run: bool = False):
    enroll_keys(mnt, microsoft_keys=microsoft_keys, dry_run=dry_run)
    sign_image(mnt, uki_name, dry_run=dry_run)


def register_boot_entry(device: str, label: str, uki_name: str, esp_index: int = 1, dry_run: bool = False):
    cmd = [
        "efibootmgr",
        "--create",
        "--disk",
        device,
        "--part",
        str(esp_index),
        "--label",
        label,
        "--loader",
        uki_loader_path(uki_name),
    ]
    run(cmd, check=True, dry_run=dry_run)
