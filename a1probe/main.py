import sys

from a1probe.clients.oci_cli_client import OciCliClient
from a1probe.config.settings import build_probe_config, load_settings
from a1probe.core.exceptions.exceptions import AppError
from a1probe.jobs.capacity_probe import run_probe
from a1probe.services.notifier import Notifier
from a1probe.utils.log import probe_logger

EXIT_INTERRUPTED = 130


def run() -> int:
    try:
        settings = load_settings()
        probe_logger.set_level(settings.LOG_LEVEL)
        config = build_probe_config(settings)
        client = OciCliClient(profile=config.profile, executable=settings.OCI_CLI_PATH)
        client.ensure_available()
    except AppError as e:
        probe_logger.error("startup.failed", error_type=type(e).__name__, error=str(e))
        return e.exit_code

    try:
        return run_probe(config, client, Notifier.from_settings(settings))
    except KeyboardInterrupt:
        probe_logger.warning("probe_run.interrupted", note="a probe instance may have been left running")
        return EXIT_INTERRUPTED


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
