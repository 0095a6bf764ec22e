import time
from typing import Optional

from a1probe.clients.oci_cli_client import extract_json
from a1probe.config.settings import ProbeConfig
from a1probe.core.exceptions.exceptions import OciCommandError, ResponseParseError
from a1probe.schemas.probe import CapacityAvailable, CapacityUnavailable, LaunchFailed, ProbeOutcome
from a1probe.utils.log import probe_logger


# Provider error codes that mean "no capacity right now".
CAPACITY_ERROR_CODES = {
    "outofcapacity",
    "outofhostcapacity",
    "limitexceeded",
}

# Case-insensitive phrases searched in the raw CLI error text. This depends on
# the provider's wording and has to be revisited if OCI rephrases its errors.
CAPACITY_MARKERS = (
    "out of capacity",
    "out of host capacity",
    "outofcapacity",
    "limitexceeded",
)


def is_capacity_error(text: str) -> bool:
    """Decide whether a launch failure is capacity exhaustion.

    The structured `code` of a ServiceError payload is checked first; the
    marker phrases are the fallback for everything else.
    """
    if not text:
        return False

    payload = extract_json(text)
    if isinstance(payload, dict):
        code = str(payload.get("code") or "").replace(" ", "").lower()
        if code in CAPACITY_ERROR_CODES:
            return True

    lowered = text.lower()
    return any(marker in lowered for marker in CAPACITY_MARKERS)


def classify_launch_error(text: str) -> ProbeOutcome:
    if is_capacity_error(text):
        return CapacityUnavailable(raw_error=text)
    return LaunchFailed(raw_error=text or "launch failed without diagnostic output")


def extract_instance_id(response: dict) -> str:
    data = response.get("data") if isinstance(response, dict) else None
    instance_id = data.get("id") if isinstance(data, dict) else None
    if not instance_id:
        raise ResponseParseError("launch succeeded but data.id is missing")
    return instance_id


def created_instance_id(stdout: str) -> Optional[str]:
    """Instance id from the output of a launch whose wait step failed, if any."""
    doc = extract_json(stdout)
    if not isinstance(doc, dict) or not isinstance(doc.get("data"), dict):
        return None
    return doc["data"].get("id") or None


class ProberService:
    """Issue one launch request and classify what came back."""

    def __init__(self, client, clock=time.time):
        self.client = client
        self.clock = clock

    def display_name(self, prefix: str) -> str:
        return f"{prefix}-{int(self.clock())}"

    def probe(self, config: ProbeConfig, image_id: str, display_name: Optional[str] = None) -> ProbeOutcome:
        name = display_name or self.display_name(config.display_name_prefix)
        probe_logger.info(
            "probe.launch_start",
            shape=config.shape,
            ocpus=config.ocpus,
            memory_gb=config.memory_gb,
            availability_domain=config.availability_domain,
            display_name=name,
        )

        try:
            response = self.client.launch_instance(
                availability_domain=config.availability_domain,
                compartment_id=config.compartment_id,
                subnet_id=config.subnet_id,
                shape=config.shape,
                ocpus=config.ocpus,
                memory_gb=config.memory_gb,
                image_id=image_id,
                display_name=name,
                timeout=config.launch_timeout_seconds,
            )
        except OciCommandError as e:
            # output with an id means the instance exists even though the wait failed
            instance_id = created_instance_id(e.stdout)
            if instance_id:
                probe_logger.warning("probe.wait_exceeded", instance_id=instance_id, error=e.output)
                return CapacityAvailable(instance_id=instance_id)

            outcome = classify_launch_error(e.output)
            if outcome.kind == "unavailable":
                probe_logger.info("probe.no_capacity", shape=config.shape, availability_domain=config.availability_domain)
            else:
                probe_logger.error("probe.launch_failed", returncode=e.returncode, error=e.output)
            return outcome

        # a success without an id is a response shape we don't understand
        instance_id = extract_instance_id(response)
        probe_logger.info("probe.capacity_available", instance_id=instance_id)
        return CapacityAvailable(instance_id=instance_id)
