"""Dataclasses shared by the installer steps and the CLI."""

from dataclasses import dataclass, field
from typing import Callable

DEFAULT_SUBVOLUMES = (
    ("@", "/"),
    ("@home", "/home"),
    ("@log", "/var/log"),
    ("@pkg", "/var/cache/pacman/pkg"),
    ("@snapshots", "/.snapshots"),
)

DEFAULT_PACKAGES = (
    "base",
    "linux-firmware",
    "btrfs-progs",
    "cryptsetup",
    "sbctl",
    "efibootmgr",
)


@dataclass
class Flags:
    plan: bool = False
    dry_run: bool = False
    assume_yes: bool = False


@dataclass
class InstallConfig:
    device: str
    esp_size: str = "1G"
    luks_name: str = "cryptroot"
    hostname: str = "archlinux"
    mount_point: str = "/mnt"
    kernel: str = "linux"
    uki_name: str = "arch-linux.efi"
    boot_label: str = "Arch Linux"
    microsoft_keys: bool = True
    subvolumes: tuple = DEFAULT_SUBVOLUMES
    packages: tuple = DEFAULT_PACKAGES

    @property
    def mapper_path(self) -> str:
        return f"/dev/mapper/{self.luks_name}"

    def package_list(self) -> list[str]:
        return [self.kernel] + [pkg for pkg in self.packages if pkg != self.kernel]


@dataclass
class DeviceMap:
    device: str
    esp: str
    root: str


@dataclass(frozen=True)
class DeviceChoice:
    path: str


@dataclass
class BlockDevice:
    name: str
    path: str
    size: str = ""
    model: str = ""

    def label(self) -> str:
        parts = [self.path, self.size, self.model]
        return "  ".join(p for p in parts if p)


@dataclass
class ProvisioningStep:
    name: str
    action: Callable[[], object]


@dataclass
class SecretInput:
    value: str = field(repr=False)
    confirmed: bool = False

    def clear(self) -> None:
        self.value = ""
        self.confirmed = False


@dataclass
class Mounts:
    mnt: str
    esp: str
    subvolumes: list = field(default_factory=list)
