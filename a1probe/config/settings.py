from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings
from dotenv import load_dotenv, find_dotenv
from typing import Optional

from a1probe.core.exceptions.exceptions import ConfigurationError


class Settings(BaseSettings):
    # OCI CLI
    OCI_PROFILE: str = "DEFAULT"
    OCI_CLI_PATH: str = "oci"

    # Probe target
    SHAPE: str = "VM.Standard.A1.Flex"
    OCPUS: int = Field(default=1, gt=0)
    MEMORY_GB: int = Field(default=6, gt=0)
    IMAGE_OCID: Optional[str] = None
    IMAGE_FILTER: str = "Canonical-Ubuntu-24.04-Minimal-aarch64-2025.07.23-0"

    # Required, checked in build_probe_config so every missing name is reported at once
    AD_NAME: Optional[str] = None
    COMPARTMENT_OCID: Optional[str] = None
    SUBNET_OCID: Optional[str] = None

    # Run options
    DISPLAY_NAME_PREFIX: str = "a1-probe"
    LAUNCH_TIMEOUT_SECONDS: float = Field(default=900, gt=0)
    TERMINATE_TIMEOUT_SECONDS: float = Field(default=600, gt=0)
    WAIT_FOR_TERMINATION: bool = True
    LOG_LEVEL: str = "INFO"

    # Notification webhooks (optional)
    # These may be unset in environments where notifications aren't configured.
    DISCORD_WEBHOOK_URL: Optional[str] = None
    DISCORD_MENTION: Optional[str] = None
    SLACK_WEBHOOK_URL: Optional[str] = None
    SLACK_MENTION: Optional[str] = None
    NOTIFY_ON_UNAVAILABLE: bool = True


class ProbeConfig(BaseModel):
    """Everything a single probe run needs. Built once, never mutated."""
    model_config = ConfigDict(frozen=True)

    profile: str
    shape: str
    ocpus: int
    memory_gb: int
    availability_domain: str
    compartment_id: str
    subnet_id: str
    image_id: Optional[str] = None
    image_filter: str
    display_name_prefix: str = "a1-probe"
    launch_timeout_seconds: float = 900
    terminate_timeout_seconds: float = 600
    wait_for_termination: bool = True


REQUIRED_SETTINGS = ("COMPARTMENT_OCID", "SUBNET_OCID", "AD_NAME")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read the environment (plus a .env file when one is found) into Settings.

    Malformed values are reported as ConfigurationError.
    """
    env_path = env_file or find_dotenv(usecwd=True)  # locate a .env file in this folder or parent folders
    if env_path:
        load_dotenv(env_path)
    try:
        return Settings()
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ConfigurationError(detail=fields or str(e)) from e


def build_probe_config(settings: Settings) -> ProbeConfig:
    missing = [name for name in REQUIRED_SETTINGS if not (getattr(settings, name) or "").strip()]
    if missing:
        raise ConfigurationError(missing=missing)

    return ProbeConfig(
        profile=settings.OCI_PROFILE,
        shape=settings.SHAPE,
        ocpus=settings.OCPUS,
        memory_gb=settings.MEMORY_GB,
        availability_domain=settings.AD_NAME.strip(),
        compartment_id=settings.COMPARTMENT_OCID.strip(),
        subnet_id=settings.SUBNET_OCID.strip(),
        image_id=settings.IMAGE_OCID,
        image_filter=settings.IMAGE_FILTER,
        display_name_prefix=settings.DISPLAY_NAME_PREFIX,
        launch_timeout_seconds=settings.LAUNCH_TIMEOUT_SECONDS,
        terminate_timeout_seconds=settings.TERMINATE_TIMEOUT_SECONDS,
        wait_for_termination=settings.WAIT_FOR_TERMINATION,
    )
