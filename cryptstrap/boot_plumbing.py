"""Kernel command line, mkinitcpio hooks and the unified kernel image preset."""
import os
import re

from .executil import run, trace

INITRAMFS_TIMEOUT = 600

HOOKS = (
    "base",
    "systemd",
    "autodetect",
    "microcode",
    "modconf",
    "kms",
    "keyboard",
    "block",
    "sd-encrypt",
    "filesystems",
    "fsck",
)

_HOOKS_RE = re.compile(r"^\s*HOOKS=\(.*\)\s*$", re.M)


def _write(path: str, text: str) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
    return path


def kernel_cmdline(luks_uuid: str, luks_name: str) -> str:
    parts = [
        f"rd.luks.name={luks_uuid}={luks_name}",
        f"root=/dev/mapper/{luks_name}",
        "rootflags=subvol=@",
        "rw",
    ]
    return " ".join(parts)


def write_cmdline(mnt: str, luks_uuid: str, luks_name: str) -> str:
    if not luks_uuid:
        raise RuntimeError("LUKS UUID unavailable; cannot write kernel cmdline")
    return _write(os.path.join(mnt, "etc", "kernel", "cmdline"), kernel_cmdline(luks_uuid, luks_name) + "\n")


def write_hooks(mnt: str) -> str:
    """Replace the active ``HOOKS=`` line of the target's mkinitcpio.conf."""

    path = os.path.join(mnt, "etc", "mkinitcpio.conf")
    desired = f"HOOKS=({' '.join(HOOKS)})"
    try:
        with open(path, "r", encoding="utf-8") as fh:
            text = fh.read()
    except FileNotFoundError:
        text = ""
    if _HOOKS_RE.search(text):
        text = _HOOKS_RE.sub(desired, text, count=1)
    else:
        text = text.rstrip("\n") + ("\n" if text else "") + desired + "\n"
    return _write(path, text)


def uki_preset(kernel: str, uki_name: str) -> str:
    return (
        f'ALL_kver="/boot/vmlinuz-{kernel}"\n'
        "PRESETS=('default')\n"
        f'default_uki="/efi/EFI/Linux/{uki_name}"\n'
    )


def write_preset(mnt: str, kernel: str, uki_name: str) -> str:
    os.makedirs(os.path.join(mnt, "efi", "EFI", "Linux"), exist_ok=True)
    return _write(os.path.join(mnt, "etc", "mkinitcpio.d", f"{kernel}.preset"), uki_preset(kernel, uki_name))


def configure_boot(mnt: str, luks_uuid: str, luks_name: str, kernel: str, uki_name: str, dry_run: bool = False):
    if dry_run:
        trace("boot_plumbing.configure.skipped", mnt=mnt, kernel=kernel, uki=uki_name)
        return []
    return [
        write_cmdline(mnt, luks_uuid, luks_name),
        write_hooks(mnt),
        write_preset(mnt, kernel, uki_name),
    ]


def build_images(mnt: str, dry_run: bool = False):
    run(["arch-chroot", mnt, "mkinitcpio", "-P"], check=True, dry_run=dry_run, timeout=INITRAMFS_TIMEOUT)


def assert_cmdline_uuid(mnt: str, luks_uuid: str):
    p = os.path.join(mnt, "etc", "kernel", "cmdline")
    if not os.path.isfile(p):
        raise RuntimeError("kernel cmdline missing")
    with open(p, "r", encoding="utf-8") as fh:
        txt = fh.read()
    if f"rd.luks.name={luks_uuid}=" not in txt:
        raise RuntimeError("kernel cmdline LUKS UUID mismatch")
