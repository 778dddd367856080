import pytest

from cryptstrap import bootstrap
from cryptstrap.model import InstallConfig


def test_pacstrap_puts_kernel_first(recorder):
    rec = recorder(bootstrap)
    config = InstallConfig(device="/dev/sda", kernel="linux-lts")
    bootstrap.pacstrap(config)

    cmd = rec.calls[0]
    assert cmd[:3] == ["pacstrap", "-K", "/mnt"]
    assert cmd[3] == "linux-lts"
    assert "base" in cmd and "sbctl" in cmd
    assert cmd.count("linux-lts") == 1


def test_write_fstab_appends_genfstab_output(tmp_path, recorder):
    mnt = tmp_path / "mnt"
    (mnt / "etc").mkdir(parents=True)
    (mnt / "etc" / "fstab").write_text("# Static information\n", encoding="utf-8")
    entries = "UUID=abcd / btrfs rw,noatime,compress=zstd,subvol=/@ 0 0"
    recorder(bootstrap, outputs={("genfstab", "-U", str(mnt)): entries})

    path = bootstrap.write_fstab(str(mnt))

    text = (mnt / "etc" / "fstab").read_text(encoding="utf-8")
    assert path == str(mnt / "etc" / "fstab")
    assert text == "# Static information\n" + entries + "\n"


def test_write_fstab_requires_entries(tmp_path, recorder):
    recorder(bootstrap)
    with pytest.raises(RuntimeError):
        bootstrap.write_fstab(str(tmp_path))


def test_write_fstab_dry_run(tmp_path, recorder):
    rec = recorder(bootstrap)
    assert bootstrap.write_fstab(str(tmp_path), dry_run=True) is None
    assert rec.dry_runs == [True]


def test_write_hostname(tmp_path):
    path = bootstrap.write_hostname(str(tmp_path), "vault")
    assert (tmp_path / "etc" / "hostname").read_text(encoding="utf-8") == "vault\n"
    assert path == str(tmp_path / "etc" / "hostname")
    assert bootstrap.write_hostname(str(tmp_path / "other"), "vault", dry_run=True) is None
    assert not (tmp_path / "other").exists()
