from typing import Dict, Optional

import requests

from a1probe.config.settings import ProbeConfig, Settings
from a1probe.schemas.probe import ProbeOutcome
from a1probe.services.image_resolver import has_image_id
from a1probe.utils.log import probe_logger


USERNAME = "OCI A1 Probe"
# Discord rejects `content` longer than 2000 characters
MAX_CONTENT_LEN = 2000


def image_label(config: ProbeConfig) -> str:
    # a directly configured OCID is what was launched; the filter was never looked up
    if has_image_id(config.image_id):
        return config.image_id.strip()
    return config.image_filter


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def format_message(outcome: ProbeOutcome, config: ProbeConfig, cleanup_error: Optional[str] = None) -> str:
    """Build the human-readable message for an outcome."""
    where = f"`{config.shape}` in `{config.availability_domain}`. Image: {image_label(config)}."

    if outcome.kind == "available":
        msg = f"✅ OCI A1 capacity **AVAILABLE** for {where}"
        if cleanup_error:
            msg += (
                f"\n⚠️ Probe instance `{outcome.instance_id}` could not be terminated, "
                f"check the console: {_truncate(cleanup_error, 300)}"
            )
        return msg

    if outcome.kind == "unavailable":
        return f"⏳ OCI A1 capacity **UNAVAILABLE** for {where} Try again later."

    head = f"❌ OCI A1 launch **FAILED** for {where}\n"
    # leave room for the fences
    budget = MAX_CONTENT_LEN - len(head) - 8
    return f"{head}```{_truncate(outcome.raw_error, budget)}```"


def format_error(error: Exception, config: ProbeConfig) -> str:
    head = f"❌ OCI A1 probe **ERROR** for `{config.shape}` in `{config.availability_domain}`. Image: {image_label(config)}.\n"
    budget = MAX_CONTENT_LEN - len(head) - 8
    return f"{head}```{_truncate(str(error), budget)}```"


class Notifier:
    """Notifier that can emit messages to Discord and Slack via incoming webhooks.

    Behavior:
    - Enabled platforms are the ones with a webhook URL in Settings.
    - If none are configured, falls back to logging only.
    - Delivery is best-effort: failures are logged and never raised.
    """

    def __init__(
        self,
        discord_url: Optional[str] = None,
        slack_url: Optional[str] = None,
        discord_mention: Optional[str] = None,
        slack_mention: Optional[str] = None,
        notify_unavailable: bool = True,
        timeout: float = 5,
    ):
        self.discord_url = discord_url
        self.slack_url = slack_url
        # mention configuration: 'everyone' or 'here' for Discord, 'here' or 'channel' for Slack
        self.discord_mention = (discord_mention or "").strip().lower()
        self.slack_mention = (slack_mention or "").strip().lower()
        self.notify_unavailable = notify_unavailable
        self.timeout = timeout
        if self.discord_url:
            probe_logger.debug("notifier.init", platform="discord", webhook=self._redact(self.discord_url))
        if self.slack_url:
            probe_logger.debug("notifier.init", platform="slack", webhook=self._redact(self.slack_url))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Notifier":
        return cls(
            discord_url=settings.DISCORD_WEBHOOK_URL,
            slack_url=settings.SLACK_WEBHOOK_URL,
            discord_mention=settings.DISCORD_MENTION,
            slack_mention=settings.SLACK_MENTION,
            notify_unavailable=settings.NOTIFY_ON_UNAVAILABLE,
        )

    def _redact(self, v: str) -> str:
        # the last path segment is enough to tell webhooks apart in logs
        parts = v.rstrip('/').split('/')
        return f".../{parts[-1][:6]}" if parts[-1] else "(redacted)"

    def _post(self, platform: str, url: str, body: Dict) -> bool:
        try:
            resp = requests.post(url, json=body, timeout=self.timeout)
            if resp.status_code >= 400:
                probe_logger.error(f"notifier.{platform}_error", status=resp.status_code, body=resp.text[:500])
                return False
            probe_logger.debug(f"notifier.{platform}_sent")
            return True
        except requests.RequestException as e:
            probe_logger.error(f"notifier.{platform}_exception", error=str(e))
            return False

    def _send_discord(self, message: str) -> bool:
        # Discord mentions must be sent in the `content` field
        prefix = ""
        if self.discord_mention == "everyone":
            prefix = "@everyone "
        elif self.discord_mention == "here":
            prefix = "@here "
        body = {"content": _truncate(prefix + message, MAX_CONTENT_LEN), "username": USERNAME}
        return self._post("discord", self.discord_url, body)

    def _send_slack(self, message: str) -> bool:
        mention_text = ""
        if self.slack_mention == "here":
            mention_text = "<!here> "
        elif self.slack_mention == "channel":
            mention_text = "<!channel> "
        # Slack mrkdwn bold is a single asterisk
        return self._post("slack", self.slack_url, {"text": mention_text + message.replace("**", "*")})

    def send(self, message: str) -> bool:
        """Send `message` to every configured platform. Never raises."""
        if not self.discord_url and not self.slack_url:
            probe_logger.debug("notifier.disabled")
            return False
        delivered = False
        try:
            if self.discord_url:
                delivered = self._send_discord(message) or delivered
            if self.slack_url:
                delivered = self._send_slack(message) or delivered
        except Exception as e:
            probe_logger.error("notifier.unexpected_error", error=str(e))
        return delivered

    def notify_outcome(self, outcome: ProbeOutcome, config: ProbeConfig, cleanup_error: Optional[str] = None) -> bool:
        probe_logger.info("notifier.outcome", kind=outcome.kind)
        if outcome.kind == "unavailable" and not self.notify_unavailable:
            probe_logger.debug("notifier.skip_unavailable")
            return False
        return self.send(format_message(outcome, config, cleanup_error))

    def notify_error(self, error: Exception, config: ProbeConfig) -> bool:
        probe_logger.info("notifier.error", error_type=type(error).__name__)
        return self.send(format_error(error, config))
