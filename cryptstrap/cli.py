"""CLI entrypoint for the encrypted Arch Linux installer."""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from typing import Any, Dict, Optional

from .devices import choose_device, device_map, select_device
from .errors import (
    DeclinedConfirmationError,
    LiveDiskError,
    NoEligibleDeviceError,
    StepAborted,
    StepFailure,
)
from .executil import append_jsonl, info, resolve_log_path, trace
from .model import Flags, InstallConfig
from .paths import artifacts_dir, logs_dir
from .prompts import require_confirmation
from .safety import require_not_live_disk
from .sequencer import run_steps
from .steps import STEP_NAMES, build_steps

RESULT_CODES: Dict[str, int] = {
    "PLAN_OK": 0,
    "DRYRUN_OK": 0,
    "INSTALL_OK": 0,
    "FAIL_DECLINED": 1,
    "FAIL_NOT_ROOT": 2,
    "FAIL_LIVE_DISK_GUARD": 2,
    "FAIL_STEP": 9,
    "FAIL_UNHANDLED": 12,
    "FAIL_NO_DEVICE": 13,
    "FAIL_ABORTED": 130,
}

STEP_EXIT_CODES: Dict[str, int] = {
    "partition_disk": 4,
    "setup_encryption": 5,
    "format_filesystems": 6,
    "create_subvolumes": 6,
    "mount_filesystems": 6,
    "bootstrap_base": 7,
    "configure_system": 8,
    "build_images": 11,
    "enroll_secure_boot": 14,
    "register_boot_entry": 15,
    "finalize": 16,
}

RESULT_LOG_PATH: Optional[str] = None
CLI_START_MONO = time.perf_counter()
_CURRENT_DEVICE: Optional[str] = None
JSON_OUTPUT_ENABLED = True


def _result_log_path() -> str:
    global RESULT_LOG_PATH
    if RESULT_LOG_PATH:
        return RESULT_LOG_PATH
    path = resolve_log_path()
    if not path:
        path = os.path.join(logs_dir(), "cryptstrap.jsonl")
    RESULT_LOG_PATH = path
    return path


def _artifact_path(name: str) -> str:
    base = artifacts_dir()
    os.makedirs(base, exist_ok=True)
    ts = time.strftime("%Y%m%d_%H%M%S")
    return os.path.join(base, f"{name}_{ts}.json")


def _write_json_artifact(name: str, data: Dict[str, Any]) -> Optional[str]:
    try:
        path = _artifact_path(name)
    except OSError:
        return None
    payload = dict(data)
    payload["artifact"] = path
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
    except OSError:
        return None
    return path


def _emit_result(
        kind: str,
        extra: Optional[Dict[str, Any]] = None,
        exit_code: Optional[int] = None,
) -> None:
    payload: Dict[str, Any] = {"result": kind, "ts": int(time.time())}
    if extra:
        payload.update(extra)
    payload.setdefault("log_path", _result_log_path())
    append_jsonl(_result_log_path(), payload)
    if JSON_OUTPUT_ENABLED:
        print(json.dumps(payload, sort_keys=True, separators=(",", ":")))
    why_text = str(payload.get("why") or payload.get("reason") or "")
    device = payload.get("device") or _CURRENT_DEVICE or ""
    total_ms = int(max(0.0, (time.perf_counter() - CLI_START_MONO) * 1000))
    print(
        f"result={kind} why={why_text} device={device} timing_total_ms={total_ms} "
        f"log_path={payload['log_path']}",
        file=sys.stderr,
    )
    code = RESULT_CODES.get(kind, 1) if exit_code is None else exit_code
    info("cli.result", result=kind, exit_code=code)
    raise SystemExit(code)


def _confirmation_text(config: InstallConfig) -> str:
    dm = device_map(config.device)
    return (
        f"ALL DATA ON {config.device} WILL BE PERMANENTLY ERASED.\n"
        f"  {dm.esp}: EFI system partition ({config.esp_size})\n"
        f"  {dm.root}: LUKS2 container '{config.luks_name}' with btrfs subvolumes "
        f"{', '.join(name for name, _ in config.subvolumes)}\n"
        "Completed steps are not rolled back if a later step fails."
    )


def _plan_payload(config: InstallConfig, flags: Flags) -> Dict[str, Any]:
    dm = device_map(config.device)
    return {
        "mode": "plan" if flags.plan else ("dry-run" if flags.dry_run else "full"),
        "device": config.device,
        "device_map": vars(dm),
        "config": {
            "esp_size": config.esp_size,
            "luks_name": config.luks_name,
            "hostname": config.hostname,
            "mount_point": config.mount_point,
            "kernel": config.kernel,
            "uki_name": config.uki_name,
            "microsoft_keys": config.microsoft_keys,
            "subvolumes": [list(sv) for sv in config.subvolumes],
            "packages": config.package_list(),
        },
        "flags": vars(flags),
        "steps": list(STEP_NAMES),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cryptstrap", add_help=True)
    parser.add_argument("--device", default=None, help="target disk; prompts with a menu when omitted")
    parser.add_argument("--esp-size", default="1G")
    parser.add_argument("--hostname", default="archlinux")
    parser.add_argument("--mount-point", default="/mnt")
    parser.add_argument("--luks-name", default="cryptroot")
    parser.add_argument("--kernel", default="linux")
    parser.add_argument("--no-microsoft-keys", dest="microsoft_keys", action="store_false")
    parser.add_argument("--plan", action="store_true")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--yes", dest="assume_yes", action="store_true")
    parser.add_argument("--json", dest="json", action="store_true", default=True)
    parser.add_argument("--no-json", dest="json", action="store_false")
    return parser


def _main_impl(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    global JSON_OUTPUT_ENABLED, _CURRENT_DEVICE
    JSON_OUTPUT_ENABLED = bool(args.json)

    flags = Flags(plan=args.plan, dry_run=args.dry_run, assume_yes=args.assume_yes)
    trace(
        "cli.args",
        device=args.device,
        plan=flags.plan,
        dry_run=flags.dry_run,
        assume_yes=flags.assume_yes,
        log_path=_result_log_path(),
    )

    if not (flags.plan or flags.dry_run) and os.geteuid() != 0:
        _emit_result("FAIL_NOT_ROOT", extra={"why": "run as root, or use --plan/--dry-run"})

    try:
        choice = choose_device(args.device) if args.device else select_device()
    except NoEligibleDeviceError as exc:
        _emit_result("FAIL_NO_DEVICE", extra={"why": str(exc), "gate": "device_selection"})
    _CURRENT_DEVICE = choice.path

    try:
        require_not_live_disk(choice.path)
    except LiveDiskError as exc:
        _emit_result("FAIL_LIVE_DISK_GUARD", extra={"why": str(exc), "device": choice.path, "gate": "live_disk_guard"})

    config = InstallConfig(
        device=choice.path,
        esp_size=args.esp_size,
        luks_name=args.luks_name,
        hostname=args.hostname,
        mount_point=args.mount_point,
        kernel=args.kernel,
        microsoft_keys=args.microsoft_keys,
    )

    if flags.plan:
        payload = _plan_payload(config, flags)
        payload["artifact"] = _write_json_artifact("plan", payload)
        _emit_result("PLAN_OK", payload)

    try:
        require_confirmation(_confirmation_text(config), assume_yes=flags.assume_yes)
    except DeclinedConfirmationError as exc:
        _emit_result("FAIL_DECLINED", extra={"why": str(exc), "gate": "confirmation"})

    steps = build_steps(config, dry_run=flags.dry_run)
    try:
        completed = run_steps(steps)
    except StepAborted as exc:
        _emit_result(
            "FAIL_ABORTED",
            extra={"why": str(exc), "step": exc.step_name, "completed": exc.completed},
        )
    except StepFailure as exc:
        _emit_result(
            "FAIL_STEP",
            extra={
                "step": exc.step_name,
                "why": str(exc),
                "error": type(exc.cause).__name__,
                "completed": exc.completed,
            },
            exit_code=STEP_EXIT_CODES.get(exc.step_name, RESULT_CODES["FAIL_STEP"]),
        )

    payload = _plan_payload(config, flags)
    payload["completed"] = completed
    _emit_result("DRYRUN_OK" if flags.dry_run else "INSTALL_OK", payload)


def main(argv: Optional[list[str]] = None) -> None:
    try:
        _main_impl(argv)
    except SystemExit:
        raise
    except (KeyboardInterrupt, EOFError):
        _emit_result("FAIL_ABORTED", extra={"why": "input aborted by operator"})
    except Exception as exc:  # noqa: BLE001
        _emit_result("FAIL_UNHANDLED", extra={"why": str(exc), "error": type(exc).__name__})


if __name__ == "__main__":
    sys.exit(main())
