"""Tests for the oci command line wrapper, with subprocess mocked out."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from a1probe.clients.oci_cli_client import OciCliClient, extract_json
from a1probe.core.exceptions.exceptions import MissingDependencyError, OciCommandError, ResponseParseError


def _completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestExtractJson:
    def test_skips_progress_lines(self):
        text = 'Action completed. Waiting until the resource has entered state: (\'RUNNING\',)\n{"data": {"id": "x"}}'
        assert extract_json(text) == {"data": {"id": "x"}}

    def test_no_json(self):
        assert extract_json("plain failure text") is None
        assert extract_json("") is None


class TestOciCliClient:
    @patch("a1probe.clients.oci_cli_client.shutil.which", return_value=None)
    def test_missing_executable(self, _which):
        with pytest.raises(MissingDependencyError) as exc:
            OciCliClient().ensure_available()
        assert exc.value.exit_code == 3

    @patch("a1probe.clients.oci_cli_client.shutil.which", return_value="/usr/bin/oci")
    def test_executable_found(self, _which):
        assert OciCliClient().ensure_available() == "/usr/bin/oci"

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_list_images_command(self, mock_run):
        mock_run.return_value = _completed(stdout=json.dumps({"data": [{"display-name": "img", "id": "ocid1.image.a"}]}))
        images = OciCliClient(profile="PROBE").list_images("ocid1.compartment", "img")
        assert images == [{"display-name": "img", "id": "ocid1.image.a"}]
        cmd = mock_run.call_args.args[0]
        assert cmd[:4] == ["oci", "compute", "image", "list"]
        assert cmd[cmd.index("--compartment-id") + 1] == "ocid1.compartment"
        assert cmd[cmd.index("--display-name") + 1] == "img"
        assert cmd[-2:] == ["--profile", "PROBE"]
        assert "--all" in cmd

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_list_images_empty_output(self, mock_run):
        mock_run.return_value = _completed(stdout="")
        assert OciCliClient().list_images("c", "img") == []

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_launch_command(self, mock_run):
        mock_run.return_value = _completed(stdout=json.dumps({"data": {"id": "ocid1.instance.abc"}}))
        response = OciCliClient().launch_instance(
            availability_domain="AD-1",
            compartment_id="ocid1.compartment",
            subnet_id="ocid1.subnet",
            shape="VM.Standard.A1.Flex",
            ocpus=2,
            memory_gb=12,
            image_id="ocid1.image.a",
            display_name="a1-probe-1",
            timeout=42,
        )
        assert response["data"]["id"] == "ocid1.instance.abc"
        cmd = mock_run.call_args.args[0]
        assert json.loads(cmd[cmd.index("--shape-config") + 1]) == {"ocpus": 2, "memoryInGBs": 12}
        assert json.loads(cmd[cmd.index("--source-details") + 1]) == {"sourceType": "image", "imageId": "ocid1.image.a"}
        assert cmd[cmd.index("--assign-public-ip") + 1] == "false"
        assert cmd[cmd.index("--wait-for-state") + 1] == "RUNNING"
        # the CLI stops waiting before the subprocess is killed
        assert int(cmd[cmd.index("--max-wait-seconds") + 1]) < 42
        assert mock_run.call_args.kwargs["timeout"] == 42

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_launch_failure_carries_output(self, mock_run):
        mock_run.return_value = _completed(returncode=1, stderr="ServiceError: Out of host capacity.")
        with pytest.raises(OciCommandError) as exc:
            OciCliClient().launch_instance("AD-1", "c", "s", "shape", 1, 6, "img", "name")
        assert exc.value.returncode == 1
        assert "Out of host capacity" in exc.value.output

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_launch_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="oci", timeout=900)
        with pytest.raises(OciCommandError) as exc:
            OciCliClient().launch_instance("AD-1", "c", "s", "shape", 1, 6, "img", "name")
        assert "timed out" in exc.value.output

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_launch_timeout_keeps_partial_stdout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="oci", timeout=900, output=b'{"data": {"id": "ocid1.instance.abc"}}')
        with pytest.raises(OciCommandError) as exc:
            OciCliClient().launch_instance("AD-1", "c", "s", "shape", 1, 6, "img", "name")
        assert "ocid1.instance.abc" in exc.value.stdout

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_wait_exceeded_keeps_stdout(self, mock_run):
        mock_run.return_value = _completed(
            returncode=2,
            stdout=json.dumps({"data": {"id": "ocid1.instance.abc", "lifecycle-state": "PROVISIONING"}}),
            stderr="Maximum wait time has been exceeded.",
        )
        with pytest.raises(OciCommandError) as exc:
            OciCliClient().launch_instance("AD-1", "c", "s", "shape", 1, 6, "img", "name")
        assert json.loads(exc.value.stdout)["data"]["id"] == "ocid1.instance.abc"

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_launch_non_json(self, mock_run):
        mock_run.return_value = _completed(stdout="Launched!")
        with pytest.raises(ResponseParseError):
            OciCliClient().launch_instance("AD-1", "c", "s", "shape", 1, 6, "img", "name")

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_terminate_command(self, mock_run):
        mock_run.return_value = _completed()
        OciCliClient().terminate_instance("ocid1.instance.abc")
        cmd = mock_run.call_args.args[0]
        assert cmd[cmd.index("--instance-id") + 1] == "ocid1.instance.abc"
        assert cmd[cmd.index("--preserve-boot-volume") + 1] == "false"
        assert "--force" in cmd
        assert cmd[cmd.index("--wait-for-state") + 1] == "TERMINATED"
        assert cmd[cmd.index("--max-wait-seconds") + 1] == "270"

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_terminate_without_wait(self, mock_run):
        mock_run.return_value = _completed()
        OciCliClient().terminate_instance("ocid1.instance.abc", wait=False)
        assert "--wait-for-state" not in mock_run.call_args.args[0]

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_executable_vanishes(self, mock_run):
        mock_run.side_effect = FileNotFoundError("oci")
        with pytest.raises(MissingDependencyError):
            OciCliClient().terminate_instance("ocid1.instance.abc")


class TestMaxWaitSeconds:
    @pytest.mark.parametrize("timeout, expected", [
        (900, 870),
        (600, 570),
        (40, 20),
        (1, 1),
    ])
    def test_below_subprocess_timeout(self, timeout, expected):
        assert OciCliClient().max_wait_seconds(timeout) == expected

    def test_uses_client_default(self):
        assert OciCliClient(timeout=120).max_wait_seconds() == 90

    @patch("a1probe.clients.oci_cli_client.subprocess.run")
    def test_terminate_wait_follows_timeout(self, mock_run):
        mock_run.return_value = _completed()
        OciCliClient().terminate_instance("ocid1.instance.abc", timeout=600)
        cmd = mock_run.call_args.args[0]
        assert cmd[cmd.index("--max-wait-seconds") + 1] == "570"
        assert mock_run.call_args.kwargs["timeout"] == 600
