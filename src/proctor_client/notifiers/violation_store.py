"""
Violation Reporter - persists violation evidence to the backend over HTTP.

Fire-and-forget: the POST runs on a daemon thread and its outcome is only
logged. It never touches cooling state or the event queue.
"""

import logging
import threading
from typing import Any

import requests

from ..models.violations import ViolationAlert
from ..utils.constants import DEFAULT_REQUEST_TIMEOUT, VIOLATION_SAVE_PATH
from . import with_retry

logger = logging.getLogger(__name__)


class ViolationReporter:
    """POSTs violation alerts with evidence images to the exam backend."""

    def __init__(
        self,
        api_base_url: str,
        exam_id: str,
        candidate_id: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self._url = f"{api_base_url.rstrip('/')}{VIOLATION_SAVE_PATH}"
        self._exam_id = exam_id
        self._candidate_id = candidate_id
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    def build_payload(self, alert: ViolationAlert) -> dict[str, Any]:
        return {
            "exam_id": self._exam_id,
            "candidate_id": self._candidate_id,
            "violation_type": alert.type.value,
            "message": alert.message,
            "timestamp": alert.timestamp,
            "image": alert.image,
        }

    def submit(self, alert: ViolationAlert, block: bool = False) -> None:
        """
        Send an alert to the backend.

        Alerts without an image are not persisted.

        Args:
            alert: Recorded violation
            block: Send on the calling thread instead of a daemon thread
        """
        if not alert.image:
            logger.debug(f"Violation {alert.id} has no image, not saving")
            return

        payload = self.build_payload(alert)
        if block:
            self._post(payload)
            return

        threading.Thread(
            target=self._post,
            args=(payload,),
            name="ViolationReporter",
            daemon=True,
        ).start()

    def _post(self, payload: dict[str, Any]) -> bool:
        try:
            response = with_retry(
                lambda: requests.post(
                    self._url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self._timeout,
                )
            )
        except requests.RequestException as e:
            logger.error(f"Error sending violation to backend: {e}")
            return False

        if not response.ok:
            logger.error(
                f"Failed to save violation: {response.status_code} {response.text[:100]}"
            )
            return False

        logger.info(f"Violation saved: {payload['violation_type']}")
        return True
