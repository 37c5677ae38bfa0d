"""Upload of converted conversations to the sharing service."""

import httpx

from session_share.config import UploadConfig
from session_share.logging import get_logger
from session_share.models import NormalizedMessage

logger = get_logger("uploader")


class UploadError(Exception):
    """The sharing service did not accept the conversation."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def upload_messages(
    messages: list[NormalizedMessage],
    provider: str,
    config: UploadConfig,
    client: httpx.Client | None = None,
) -> str:
    """POST messages to the sharing endpoint and return the share link.

    A single attempt is made; there is no retry.

    Args:
        messages: Converted conversation
        provider: Name of the provider the conversation came from
        config: Endpoint, share URL template and timeout
        client: HTTP client to use (a short-lived one is created if omitted)

    Returns:
        Shareable URL for the uploaded conversation

    Raises:
        UploadError: On transport errors, non-2xx responses, or a missing clip id
    """
    payload = {
        "data": {"messages": [message.to_dict() for message in messages]},
        "provider": provider,
    }

    logger.info("Uploading %d messages from %s to %s", len(messages), provider, config.endpoint)

    owns_client = client is None
    http = client or httpx.Client(timeout=config.timeout_seconds)
    try:
        response = http.post(config.endpoint, json=payload)
    except httpx.HTTPError as e:
        raise UploadError(f"Upload failed: {e}") from e
    finally:
        if owns_client:
            http.close()

    if not response.is_success:
        raise UploadError(f"HTTP error! status: {response.status_code}", status_code=response.status_code)

    try:
        clip_id = response.json().get("id")
    except (ValueError, AttributeError) as e:
        raise UploadError("Invalid response from sharing service", status_code=response.status_code) from e

    if not clip_id:
        raise UploadError("No clip ID returned from API", status_code=response.status_code)

    share_url = config.share_url.format(id=clip_id)
    logger.info("Uploaded conversation: %s", share_url)
    return share_url
