"""GPT layout: EFI system partition followed by one LUKS partition."""
import re

from .executil import run, udev_settle

ESP_TYPE = "ef00"
LUKS_TYPE = "8309"


def precleanup(device: str, dry_run: bool = False):
    run(["swapoff", "-a"], check=False, dry_run=dry_run)
    run(["wipefs", "--all", device], check=True, dry_run=dry_run)
    udev_settle()


def reread(device: str, dry_run: bool = False):
    run(["partprobe", device], check=False, dry_run=dry_run)
    udev_settle()


def layout_commands(device: str, esp_size: str) -> list[list[str]]:
    return [
        ["sgdisk", "--zap-all", device],
        ["sgdisk", "-n", f"1:0:+{esp_size}", "-t", f"1:{ESP_TYPE}", "-c", "1:ESP", device],
        ["sgdisk", "-n", "2:0:0", "-t", f"2:{LUKS_TYPE}", "-c", "2:cryptroot", device],
    ]


def apply_layout(device: str, esp_size: str, dry_run: bool = False):
    precleanup(device, dry_run=dry_run)
    for cmd in layout_commands(device, esp_size):
        run(cmd, check=True, dry_run=dry_run, timeout=60.0)
    reread(device, dry_run=dry_run)


def verify_layout(device: str, dry_run: bool = False) -> bool:
    out = run(["sgdisk", "-p", device], check=False, dry_run=dry_run).out
    if dry_run:
        return True
    return bool(out and re.search(r"^\s*1\s+", out, re.M) and re.search(r"^\s*2\s+", out, re.M))
