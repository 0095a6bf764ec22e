# clients/oci_cli_client.py
import json
import shutil
import subprocess

from typing import Any, Dict, List, Optional
from a1probe.core.exceptions.exceptions import MissingDependencyError, OciCommandError, ResponseParseError
from a1probe.utils.log import probe_logger

# seconds left between the CLI giving up its wait and the subprocess being killed
WAIT_MARGIN_SECONDS = 30


def extract_json(text: str) -> Optional[Any]:
    """Return the first JSON document found in `text`, or None.

    The CLI mixes progress lines ("Action completed. Waiting until...") with
    its JSON payloads, so parsing starts at the first brace or bracket.
    """
    if not text:
        return None
    decoder = json.JSONDecoder()
    for idx, ch in enumerate(text):
        if ch not in "{[":
            continue
        try:
            doc, _ = decoder.raw_decode(text[idx:])
            return doc
        except ValueError:
            continue
    return None


class OciCliClient:
    """Thin wrapper over the `oci` command line.

    Every call runs synchronously, adds `--profile`, and returns the parsed JSON
    output. A non-zero exit status or a timeout raises OciCommandError with the
    full diagnostic text so callers can classify it.
    """

    def __init__(self, profile: str = "DEFAULT", executable: str = "oci", timeout: float = 300):
        self.profile = profile
        self.executable = executable
        self.timeout = timeout

    def ensure_available(self) -> str:
        path = shutil.which(self.executable)
        if not path:
            probe_logger.error("oci.not_found", executable=self.executable)
            raise MissingDependencyError(self.executable)
        return path

    def _build_command(self, args: List[str]) -> List[str]:
        return [self.executable, *args, "--profile", self.profile]

    def _run_command(self, action: str, args: List[str], timeout: Optional[float] = None) -> str:
        """run the CLI and return stdout"""
        cmd = self._build_command(args)
        probe_logger.debug("oci.command", action=action, args=args)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout or self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            probe_logger.error("oci.timeout", action=action, timeout=e.timeout)
            partial = e.stdout.decode(errors="replace") if isinstance(e.stdout, bytes) else (e.stdout or "")
            raise OciCommandError(action, None, f"timed out after {e.timeout}s", stdout=partial) from e
        except FileNotFoundError as e:
            raise MissingDependencyError(self.executable) from e

        if result.returncode != 0:
            output = "\n".join(part.strip() for part in (result.stderr, result.stdout) if part and part.strip())
            probe_logger.debug("oci.status", action=action, returncode=result.returncode)
            raise OciCommandError(action, result.returncode, output, stdout=result.stdout or "")

        return result.stdout

    def max_wait_seconds(self, timeout: Optional[float] = None) -> int:
        """CLI-side wait budget, kept below the subprocess timeout.

        The CLI then gives up waiting on its own and still prints the resource
        JSON, instead of being killed with the output lost.
        """
        budget = int(timeout or self.timeout)
        return max(budget - WAIT_MARGIN_SECONDS, budget // 2, 1)

    def _parse(self, action: str, stdout: str, allow_empty: bool = False) -> Any:
        if not stdout.strip():
            if allow_empty:
                return None
            raise ResponseParseError(f"empty output from oci {action}")
        doc = extract_json(stdout)
        if doc is None:
            raise ResponseParseError(f"non-JSON output from oci {action}: {stdout.strip()[:200]}")
        return doc

    def list_images(self, compartment_id: str, display_name: str) -> List[Dict[str, Any]]:
        """list images in the compartment whose display-name is `display_name`"""
        stdout = self._run_command("compute image list", [
            "compute", "image", "list",
            "--compartment-id", compartment_id,
            "--display-name", display_name,
            "--all",
        ])
        # the CLI prints nothing when the listing is empty
        doc = self._parse("compute image list", stdout, allow_empty=True)
        if doc is None:
            return []
        if isinstance(doc, dict):
            return doc.get("data") or []
        return doc

    def launch_instance(
        self,
        availability_domain: str,
        compartment_id: str,
        subnet_id: str,
        shape: str,
        ocpus: int,
        memory_gb: int,
        image_id: str,
        display_name: str,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """launch one instance and block until it is RUNNING"""
        stdout = self._run_command("compute instance launch", [
            "compute", "instance", "launch",
            "--availability-domain", availability_domain,
            "--compartment-id", compartment_id,
            "--shape", shape,
            "--shape-config", json.dumps({"ocpus": ocpus, "memoryInGBs": memory_gb}),
            "--display-name", display_name,
            "--source-details", json.dumps({"sourceType": "image", "imageId": image_id}),
            "--subnet-id", subnet_id,
            "--assign-public-ip", "false",
            "--wait-for-state", "RUNNING",
            "--max-wait-seconds", str(self.max_wait_seconds(timeout)),
        ], timeout=timeout)
        doc = self._parse("compute instance launch", stdout)
        if not isinstance(doc, dict):
            raise ResponseParseError("launch output is not a JSON object")
        return doc

    def terminate_instance(
        self,
        instance_id: str,
        force: bool = True,
        preserve_boot_volume: bool = False,
        wait: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        args = [
            "compute", "instance", "terminate",
            "--instance-id", instance_id,
            "--preserve-boot-volume", "true" if preserve_boot_volume else "false",
        ]
        if force:
            args.append("--force")
        if wait:
            args.extend([
                "--wait-for-state", "TERMINATED",
                "--max-wait-seconds", str(self.max_wait_seconds(timeout)),
            ])
        self._run_command("compute instance terminate", args, timeout=timeout)
