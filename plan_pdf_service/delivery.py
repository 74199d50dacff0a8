"""
Delivery of finished session plan PDFs to an automation webhook.

The webhook (e.g. an email automation flow) receives the PDF as a file
upload plus a JSON metadata part with recipient and identifiers. Only
complete artifacts are ever sent.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from plan_layout.common.config import get_settings
from plan_layout.common.error_handling import DeliveryError

logger = logging.getLogger(__name__)


class _TransientDeliveryError(Exception):
    """Timeout, connection failure or 5xx; worth another attempt."""


class WebhookDelivery:
    """Dispatch a PDF artifact and its metadata to the configured webhook."""

    def __init__(self, webhook_url: Optional[str] = None, timeout: int = 30):
        self.webhook_url = webhook_url or get_settings().delivery_webhook_url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send(self, artifact: bytes, metadata: Dict[str, Any], filename: str = "session-plan.pdf") -> None:
        """
        Send the artifact.

        Args:
            artifact: PDF bytes
            metadata: Recipient and identifiers (e.g. client email, session id)
            filename: Attachment filename

        Raises:
            DeliveryError: No webhook configured, the webhook rejected the
                request, or all retries failed
        """
        if not self.enabled:
            raise DeliveryError("No delivery webhook configured (DELIVERY_WEBHOOK_URL)")

        try:
            self._post(artifact, metadata, filename)
        except _TransientDeliveryError as e:
            logger.error(f"Delivery failed after retries: {e}")
            raise DeliveryError(f"Delivery failed after retries: {e}") from e

        logger.info(f"Delivered {filename} ({len(artifact)} bytes) to webhook")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(_TransientDeliveryError),
        reraise=True
    )
    def _post(self, artifact: bytes, metadata: Dict[str, Any], filename: str) -> None:
        try:
            response = requests.post(
                self.webhook_url,
                files={"file": (filename, artifact, "application/pdf")},
                data={"metadata": json.dumps(metadata)},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning("Delivery webhook timeout")
            raise _TransientDeliveryError("webhook timeout") from e
        except requests.exceptions.ConnectionError as e:
            logger.warning("Delivery webhook unavailable")
            raise _TransientDeliveryError("webhook unavailable") from e

        if response.status_code >= 500:
            logger.warning(f"Delivery webhook error: {response.status_code}")
            raise _TransientDeliveryError(f"webhook returned {response.status_code}")

        if response.status_code >= 400:
            logger.error(f"Delivery webhook rejected request: {response.status_code} - {response.text[:200]}")
            raise DeliveryError(f"Webhook rejected delivery: {response.status_code}")
