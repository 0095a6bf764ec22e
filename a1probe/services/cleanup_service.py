from a1probe.config.settings import ProbeConfig
from a1probe.core.exceptions.exceptions import CleanupWarning, OciCommandError
from a1probe.schemas.probe import ProbeOutcome
from a1probe.utils.log import probe_logger


class CleanupService:
    """Terminate the probe instance, boot volume included."""

    def __init__(self, client):
        self.client = client

    def cleanup(self, outcome: ProbeOutcome, config: ProbeConfig) -> bool:
        """Return True when an instance was terminated, False when there was nothing to do.

        Raises CleanupWarning when termination fails; callers log it and move on.
        """
        if outcome.kind != "available":
            return False

        probe_logger.info("cleanup.terminate_start", instance_id=outcome.instance_id, wait=config.wait_for_termination)
        try:
            self.client.terminate_instance(
                outcome.instance_id,
                force=True,
                preserve_boot_volume=False,
                wait=config.wait_for_termination,
                timeout=config.terminate_timeout_seconds,
            )
        except OciCommandError as e:
            raise CleanupWarning(outcome.instance_id, e.output) from e

        probe_logger.info("cleanup.terminated", instance_id=outcome.instance_id)
        return True
