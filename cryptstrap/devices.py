"""Block device enumeration, operator selection and partition naming."""
from __future__ import annotations

import json
import re
import subprocess
import sys

from .errors import NoEligibleDeviceError
from .executil import run, trace
from .model import BlockDevice, DeviceChoice, DeviceMap

# SATA/SCSI, NVMe namespaces, virtio and SD/eMMC whole disks.
ELIGIBLE_NAME_RE = re.compile(r"^(sd[a-z]+|nvme\d+n\d+|vd[a-z]+|mmcblk\d+)$")


def _lsblk_disks() -> list[dict]:
    try:
        result = run(["lsblk", "-J", "-d", "-o", "NAME,PATH,SIZE,MODEL,TYPE"], check=True, dry_run=False)
    except (subprocess.SubprocessError, OSError) as exc:
        raise NoEligibleDeviceError(f"failed to enumerate block devices: {exc}") from exc
    try:
        payload = json.loads(result.out or "{}")
    except json.JSONDecodeError as exc:
        raise NoEligibleDeviceError(f"failed to parse lsblk output: {exc}") from exc
    return list(payload.get("blockdevices") or [])


def list_eligible_devices() -> list[BlockDevice]:
    devices = []
    for entry in _lsblk_disks():
        name = entry.get("name") or ""
        if entry.get("type") not in (None, "disk"):
            continue
        if not ELIGIBLE_NAME_RE.match(name):
            continue
        path = entry.get("path") or f"/dev/{name}"
        devices.append(
            BlockDevice(
                name=name,
                path=path,
                size=(entry.get("size") or "").strip(),
                model=(entry.get("model") or "").strip(),
            )
        )
    trace("devices.eligible", devices=[d.path for d in devices])
    return devices


def _render_menu(devices: list[BlockDevice]) -> None:
    for idx, dev in enumerate(devices, start=1):
        print(f"{idx}) {dev.label()}", file=sys.stderr)


def select_device(devices: list[BlockDevice] | None = None) -> DeviceChoice:
    """Present a numbered menu and return the operator's pick.

    Invalid entries reprompt until a listed index is chosen.
    """

    if devices is None:
        devices = list_eligible_devices()
    if not devices:
        raise NoEligibleDeviceError("no eligible block devices found")

    print("Select the target disk:", file=sys.stderr)
    _render_menu(devices)
    while True:
        reply = input("#? ").strip()
        if reply.isdigit() and 1 <= int(reply) <= len(devices):
            choice = DeviceChoice(devices[int(reply) - 1].path)
            trace("devices.selected", device=choice.path)
            return choice
        _render_menu(devices)


def choose_device(path: str, devices: list[BlockDevice] | None = None) -> DeviceChoice:
    """Validate a device passed on the command line against the eligible set."""

    if devices is None:
        devices = list_eligible_devices()
    if not devices:
        raise NoEligibleDeviceError("no eligible block devices found")
    for dev in devices:
        if path in (dev.path, dev.name):
            return DeviceChoice(dev.path)
    raise NoEligibleDeviceError(f"{path} is not an eligible device ({', '.join(d.path for d in devices)})")


def partition_path(device: str, index: int) -> str:
    # nvme0n1 and mmcblk0 take a ``p`` separator, sda does not.
    base = device.rstrip("/") or device
    suffix = "p" if base[-1:].isdigit() else ""
    return f"{base}{suffix}{index}"


def device_map(device: str) -> DeviceMap:
    return DeviceMap(device=device, esp=partition_path(device, 1), root=partition_path(device, 2))


def uuid_of(path: str, dry_run: bool = False) -> str:
    if dry_run:
        return ""
    r = run(["blkid", "-s", "UUID", "-o", "value", path], check=False)
    return (r.out or "").strip()
