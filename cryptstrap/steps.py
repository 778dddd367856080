"""The fixed, ordered list of provisioning steps."""

from __future__ import annotations

from typing import Callable

from . import boot_plumbing, bootstrap, filesystem, luks, partitioning, secureboot
from .devices import device_map, uuid_of
from .model import InstallConfig, ProvisioningStep, SecretInput
from .prompts import prompt_secret

STEP_NAMES = (
    "partition_disk",
    "setup_encryption",
    "format_filesystems",
    "create_subvolumes",
    "mount_filesystems",
    "bootstrap_base",
    "configure_system",
    "build_images",
    "enroll_secure_boot",
    "register_boot_entry",
    "finalize",
)


def build_steps(
    config: InstallConfig,
    dry_run: bool = False,
    read_secret: Callable[[], SecretInput] = prompt_secret,
) -> list[ProvisioningStep]:
    dm = device_map(config.device)
    mnt = config.mount_point

    def partition_disk():
        partitioning.apply_layout(dm.device, config.esp_size, dry_run=dry_run)
        if not partitioning.verify_layout(dm.device, dry_run=dry_run):
            raise RuntimeError(f"partition table on {dm.device} does not show the expected two partitions")

    def setup_encryption():
        secret = None if dry_run else read_secret()
        luks.setup_encryption(dm.root, config.luks_name, secret, dry_run=dry_run)

    def format_filesystems():
        filesystem.format_filesystems(dm.esp, config.mapper_path, dry_run=dry_run)

    def create_subvolumes():
        filesystem.create_subvolumes(config.mapper_path, mnt, config.subvolumes, dry_run=dry_run)

    def mount_filesystems():
        filesystem.mount_filesystems(config, dm.esp, dry_run=dry_run)

    def bootstrap_base():
        bootstrap.pacstrap(config, dry_run=dry_run)

    def configure_system():
        bootstrap.write_fstab(mnt, dry_run=dry_run)
        bootstrap.write_hostname(mnt, config.hostname, dry_run=dry_run)
        luks_uuid = uuid_of(dm.root, dry_run=dry_run)
        boot_plumbing.configure_boot(
            mnt, luks_uuid, config.luks_name, config.kernel, config.uki_name, dry_run=dry_run
        )
        if not dry_run:
            boot_plumbing.assert_cmdline_uuid(mnt, luks_uuid)

    def build_images():
        boot_plumbing.build_images(mnt, dry_run=dry_run)

    def enroll_secure_boot():
        secureboot.enroll_and_sign(mnt, config.uki_name, microsoft_keys=config.microsoft_keys, dry_run=dry_run)

    def register_boot_entry():
        secureboot.register_boot_entry(dm.device, config.boot_label, config.uki_name, dry_run=dry_run)

    def finalize():
        filesystem.unmount_all(mnt, dry_run=dry_run)
        luks.close_luks(config.luks_name, dry_run=dry_run)

    actions = {
        "partition_disk": partition_disk,
        "setup_encryption": setup_encryption,
        "format_filesystems": format_filesystems,
        "create_subvolumes": create_subvolumes,
        "mount_filesystems": mount_filesystems,
        "bootstrap_base": bootstrap_base,
        "configure_system": configure_system,
        "build_images": build_images,
        "enroll_secure_boot": enroll_secure_boot,
        "register_boot_entry": register_boot_entry,
        "finalize": finalize,
    }
    return [ProvisioningStep(name, actions[name]) for name in STEP_NAMES]
