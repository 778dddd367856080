import subprocess

import pytest

from cryptstrap import safety
from cryptstrap.errors import LiveDiskError


def _fake_outputs(outputs):
    def fake_check_output(cmd, text=True):
        return outputs.get(tuple(cmd), "")

    return fake_check_output


LIVE_ON_NVME = {
    ("findmnt", "-no", "SOURCE", "/"): "/dev/nvme0n1p2\n",
    ("findmnt", "-no", "SOURCE", "/boot"): "/dev/nvme0n1p1\n",
    ("lsblk", "-no", "PKNAME", "/dev/nvme0n1p2"): "nvme0n1\n",
    ("lsblk", "-no", "PKNAME", "/dev/nvme0n1p1"): "nvme0n1\n",
}


def test_guard_not_live_disk_detects_overlap(monkeypatch):
    monkeypatch.setattr(subprocess, "check_output", _fake_outputs(LIVE_ON_NVME))
    ok, reason = safety.guard_not_live_disk("/dev/nvme0n1")
    assert not ok
    assert "live disk" in reason

    with pytest.raises(LiveDiskError):
        safety.require_not_live_disk("/dev/nvme0n1")


def test_guard_allows_other_disk(monkeypatch):
    monkeypatch.setattr(subprocess, "check_output", _fake_outputs(LIVE_ON_NVME))
    assert safety.guard_not_live_disk("/dev/sda") == (True, "")
    safety.require_not_live_disk("/dev/sda")


def test_guard_tolerates_missing_tools(monkeypatch):
    def missing(cmd, text=True):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "check_output", missing)
    assert safety.guard_not_live_disk("/dev/sda") == (True, "")


def test_live_iso_loop_root_is_not_a_disk(monkeypatch):
    outputs = {("findmnt", "-no", "SOURCE", "/"): "airootfs\n"}
    monkeypatch.setattr(subprocess, "check_output", _fake_outputs(outputs))
    assert safety.guard_not_live_disk("/dev/sda")[0]
