from a1probe.config.settings import ProbeConfig
from a1probe.core.exceptions.exceptions import ImageNotFoundError, OciCommandError, ResponseParseError
from a1probe.utils.log import probe_logger


def has_image_id(image_id) -> bool:
    # "null" is what an unset jq/CLI lookup leaves behind in shell configs
    return bool(image_id) and image_id.strip() not in ("", "null")


class ImageResolver:
    """Turn the configured image reference into an image OCID.

    A direct IMAGE_OCID wins and costs no CLI call. Otherwise the compartment's
    image listing is matched exactly on display-name and the first entry, in the
    order the provider returns them, is used.
    """

    def __init__(self, client):
        self.client = client

    def resolve(self, config: ProbeConfig) -> str:
        if has_image_id(config.image_id):
            probe_logger.info("image.direct", image_id=config.image_id.strip())
            return config.image_id.strip()

        probe_logger.info("image.resolve_start", display_name=config.image_filter)
        try:
            images = self.client.list_images(config.compartment_id, config.image_filter)
        except (OciCommandError, ResponseParseError) as e:
            probe_logger.error("image.list_failed", error=str(e))
            raise ImageNotFoundError(config.image_filter, config.compartment_id) from e

        matches = [img for img in images if img.get("display-name") == config.image_filter]
        if len(matches) > 1:
            probe_logger.warning("image.ambiguous", display_name=config.image_filter, count=len(matches))
        if not matches or not matches[0].get("id"):
            probe_logger.error("image.not_found", display_name=config.image_filter)
            raise ImageNotFoundError(config.image_filter, config.compartment_id)

        image_id = matches[0]["id"]
        probe_logger.info("image.resolved", display_name=config.image_filter, image_id=image_id)
        return image_id
