"""Tests for Pulumi automation helpers.

The passphrase file must reach the Pulumi subprocess through env_vars;
without it, stacks written by one run cannot be decrypted by the next.
"""

import os

import pytest

from crossbar.core import automation
from crossbar.core.paths import ensure_work_dir, get_backend_url


@pytest.fixture
def passphrase_file(tmp_path, monkeypatch):
    path = tmp_path / "secrets" / "pulumi-passphrase"
    original = automation._ensure_passphrase
    monkeypatch.setattr(automation, "_ensure_passphrase", lambda: original(path))
    monkeypatch.delenv("PULUMI_CONFIG_PASSPHRASE_FILE", raising=False)
    return path


class TestPassphrase:
    """Passphrase creation and propagation."""

    def test_created_once(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PULUMI_CONFIG_PASSPHRASE_FILE", raising=False)
        monkeypatch.setenv("PULUMI_CONFIG_PASSPHRASE", "direct")
        path = tmp_path / "pp"

        automation._ensure_passphrase(path)
        first = path.read_text()
        automation._ensure_passphrase(path)

        assert path.read_text() == first
        assert len(first) >= 32
        assert os.environ["PULUMI_CONFIG_PASSPHRASE_FILE"] == str(path)
        assert "PULUMI_CONFIG_PASSPHRASE" not in os.environ

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_private_permissions(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PULUMI_CONFIG_PASSPHRASE_FILE", raising=False)
        path = tmp_path / "pp"
        automation._ensure_passphrase(path)
        assert path.stat().st_mode & 0o777 == 0o600

    def test_workspace_options_pass_environment(self, passphrase_file, tmp_path):
        opts = automation.workspace_options(
            "crossbar-create-network", tmp_path, backend_url=f"file://{tmp_path}/backend"
        )

        assert opts.env_vars is not None
        assert opts.env_vars["PULUMI_CONFIG_PASSPHRASE_FILE"] == str(passphrase_file)
        assert opts.project_settings.name == "crossbar-create-network"
        assert passphrase_file.exists()


class TestOutputs:
    """Reading stack outputs."""

    def test_get_output_value(self):
        class Output:
            value = "35.1.2.3"

        outputs = {"endpoint": Output(), "raw": {"value": 3}, "empty": None}
        assert automation.get_output_value(outputs, "endpoint") == "35.1.2.3"
        assert automation.get_output_value(outputs, "raw") == 3
        assert automation.get_output_value(outputs, "empty", "x") == "x"
        assert automation.get_output_value(outputs, "missing", "x") == "x"


class TestPaths:
    """On-disk locations."""

    def test_explicit_backend_url(self):
        assert get_backend_url("gs://bucket") == "gs://bucket"

    def test_work_dir_rejects_bad_names(self):
        with pytest.raises(ValueError):
            ensure_work_dir("../escape")
        with pytest.raises(ValueError):
            ensure_work_dir("")
