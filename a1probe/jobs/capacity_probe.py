from typing import Optional

from a1probe.config.settings import ProbeConfig
from a1probe.core.exceptions.exceptions import AppError, CleanupWarning
from a1probe.schemas.probe import exit_code_for
from a1probe.services.cleanup_service import CleanupService
from a1probe.services.image_resolver import ImageResolver
from a1probe.services.notifier import Notifier
from a1probe.services.prober_service import ProberService
from a1probe.utils.log import probe_logger


def run_probe(config: ProbeConfig, client, notifier: Optional[Notifier] = None) -> int:
    """Run one probe attempt and return the process exit code.

    - Resolves the image OCID (no CLI call when IMAGE_OCID is set)
    - Launches one instance and classifies the result
    - Terminates the instance when the launch succeeded
    - Notifies the configured webhooks (best-effort)

    0 = capacity available, 2 = capacity unavailable, 1 = anything fatal.
    """
    notifier = notifier or Notifier()
    probe_logger.info("probe_run.start", shape=config.shape, availability_domain=config.availability_domain)

    try:
        image_id = ImageResolver(client).resolve(config)
        outcome = ProberService(client).probe(config, image_id)
    except AppError as e:
        # nothing was created yet (or the id is unknown), so there is nothing to clean up
        probe_logger.error("probe_run.fatal", error_type=type(e).__name__, error=str(e))
        _notify(notifier.notify_error, e, config)
        return e.exit_code

    cleanup_error = None
    try:
        CleanupService(client).cleanup(outcome, config)
    except CleanupWarning as w:
        # capacity was observed; a stray instance is for the operator to handle
        cleanup_error = str(w)
        probe_logger.warning("cleanup.terminate_failed", instance_id=w.instance_id, error=cleanup_error)

    _notify(notifier.notify_outcome, outcome, config, cleanup_error)

    code = exit_code_for(outcome)
    probe_logger.info("probe_run.finished", kind=outcome.kind, exit_code=code)
    return code


def _notify(fn, *args):
    try:
        fn(*args)
    except Exception as e:
        probe_logger.error("notifier.send_failed", error=str(e))
