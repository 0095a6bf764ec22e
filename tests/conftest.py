"""Shared fixtures: a ready-made ProbeConfig and an in-memory stand-in for the oci CLI."""

import pytest

from a1probe.config.settings import ProbeConfig, Settings
from a1probe.core.exceptions.exceptions import OciCommandError


OUT_OF_CAPACITY = """ServiceError:
{
    "code": "InternalError",
    "message": "Out of host capacity.",
    "opc-request-id": "ABCDEF/123",
    "operation_name": "launch_instance",
    "status": 500
}"""

NOT_AUTHORIZED = """ServiceError:
{
    "code": "NotAuthorizedOrNotFound",
    "message": "Authorization failed or requested resource not found.",
    "status": 404
}"""


class FakeOciClient:
    """Records every call; behaviour is set through the constructor."""

    def __init__(self, images=None, launch_response=None, launch_error=None, terminate_error=None, launch_stdout=""):
        self.images = images or []
        self.launch_response = launch_response
        self.launch_error = launch_error
        self.launch_stdout = launch_stdout
        self.terminate_error = terminate_error
        self.calls = []

    def list_images(self, compartment_id, display_name):
        self.calls.append(("list_images", compartment_id, display_name))
        return list(self.images)

    def launch_instance(self, **kwargs):
        self.calls.append(("launch_instance", kwargs))
        if self.launch_error is not None:
            raise OciCommandError("compute instance launch", 1, self.launch_error, stdout=self.launch_stdout)
        return self.launch_response

    def terminate_instance(self, instance_id, force=True, preserve_boot_volume=False, wait=True, timeout=None):
        self.calls.append(("terminate_instance", instance_id, force, preserve_boot_volume, wait))
        if self.terminate_error is not None:
            raise OciCommandError("compute instance terminate", 1, self.terminate_error)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


class RecordingNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.outcomes = []
        self.errors = []

    def notify_outcome(self, outcome, config, cleanup_error=None):
        self.outcomes.append((outcome, cleanup_error))
        if self.fail:
            raise RuntimeError("webhook unreachable")
        return True

    def notify_error(self, error, config):
        self.errors.append(error)
        if self.fail:
            raise RuntimeError("webhook unreachable")
        return True


@pytest.fixture
def probe_config():
    return ProbeConfig(
        profile="DEFAULT",
        shape="VM.Standard.A1.Flex",
        ocpus=1,
        memory_gb=6,
        availability_domain="kIdk:AP-SINGAPORE-1-AD-1",
        compartment_id="ocid1.compartment.oc1..aaaa",
        subnet_id="ocid1.subnet.oc1.ap-singapore-1.aaaa",
        image_id=None,
        image_filter="Canonical-Ubuntu-24.04-Minimal-aarch64-2025.07.23-0",
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable Settings reads so tests start from the defaults."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
