class AppError(Exception):
    """Base class for all application-level errors."""
    exit_code = 1


class DomainError(AppError):
    """Base for probe logic errors."""
    pass

class ConfigurationError(DomainError):
    def __init__(self, missing=None, detail: str = ""):
        self.missing = list(missing or [])
        if self.missing:
            self.message = f"Missing required configuration: {', '.join(self.missing)}"
        else:
            self.message = f"Invalid configuration: {detail}"
        super().__init__(self.message)

class ImageNotFoundError(DomainError):
    def __init__(self, display_name: str, compartment_id: str = ""):
        self.display_name = display_name
        self.message = f"Exact image display-name not found in compartment '{compartment_id}': {display_name}"
        super().__init__(self.message)

class ResponseParseError(DomainError):
    def __init__(self, detail: str) -> None:
        self.message = f"Couldn't parse provider response: {detail}"
        super().__init__(self.message)



class InfrastructureError(AppError):
    """Base for infrastructure-related errors (CLI, webhooks, etc)."""
    pass

class MissingDependencyError(InfrastructureError):
    exit_code = 3

    def __init__(self, tool: str):
        self.tool = tool
        self.message = f"Required tool '{tool}' not found on PATH"
        super().__init__(self.message)

class OciCommandError(InfrastructureError):
    def __init__(self, action: str, returncode=None, output: str = "", stdout: str = ""):
        self.action = action
        self.returncode = returncode
        self.output = output
        # raw stdout, which may still hold the resource JSON (e.g. after a wait timeout)
        self.stdout = stdout or ""
        self.message = f"oci {action} failed (exit={returncode}): {output}"
        super().__init__(self.message)

class CleanupWarning(InfrastructureError):
    """Termination of a probe instance failed. Never fatal."""

    def __init__(self, instance_id: str, detail: str = ""):
        self.instance_id = instance_id
        self.message = f"Could not terminate probe instance '{instance_id}': {detail}"
        super().__init__(self.message)
