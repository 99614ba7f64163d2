"""
Alert Service
=============

Fires the emergency alert buttons.

WHAT THIS DOES:
--------------
The admin panel has two big buttons: "Alert Citizens" and
"Alert Representatives". Pressing one POSTs to a workflow webhook
(n8n) that does the actual calling/SMS. We just tell it who to notify:

    POST <ALERT_WEBHOOK_URL>
    {
        "userType": "citizen",
        "timestamp": "2025-07-11T08:30:00.000000+00:00",
        "source": "ResQlink_Admin_Panel"
    }

Any 2xx means the workflow accepted it. Anything else is a failure.
We never retry: a duplicate call-out is worse than a missed button press,
the operator can always press again.

Author: ResQlink Team
"""

import httpx
import logging
from datetime import datetime, timezone
from typing import Optional

from resqlink.models import AlertTarget, AlertPayload, AlertResult

logger = logging.getLogger(__name__)


SUCCESS_TITLE = "Alert Triggered Successfully"
FAILURE_TITLE = "Alert Failed"
FAILURE_DESCRIPTION = "Unable to send alert. Please try again or contact support."


class AlertInProgressError(Exception):
    """The same button was pressed again before the first call finished."""

    def __init__(self, target: AlertTarget):
        super().__init__(f"An alert to {target.value} is already being sent")
        self.target = target


class AlertService:
    """
    Posts alert requests to the notification workflow.

    HOW TO USE:
    ----------
    service = AlertService(webhook_url="https://n8n.example.org/webhook/...")

    result = await service.trigger(AlertTarget.CITIZEN)
    if result.success:
        print(result.description)  # "Citizens have been notified of ..."
    """

    DEFAULT_SOURCE = "ResQlink_Admin_Panel"

    def __init__(
        self,
        webhook_url: str,
        source: str = DEFAULT_SOURCE,
        request_timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.webhook_url = webhook_url or ""
        self.source = source or self.DEFAULT_SOURCE
        self.http_client = http_client or httpx.AsyncClient(timeout=request_timeout)

        # Targets with a request on the wire (the button's loading state)
        self._in_flight: set[AlertTarget] = set()

        self.is_configured = bool(self.webhook_url)
        if not self.is_configured:
            logger.warning(
                "Alert service not configured. Set ALERT_WEBHOOK_URL "
                "environment variable to enable alert buttons."
            )

    def is_sending(self, target: AlertTarget) -> bool:
        return target in self._in_flight

    def build_payload(self, target: AlertTarget) -> dict:
        """The JSON body the webhook expects (camelCase keys)."""
        payload = AlertPayload(
            user_type=target,
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=self.source,
        )
        return payload.model_dump(mode="json", by_alias=True)

    async def trigger(self, target: AlertTarget) -> AlertResult:
        """
        Send one alert.

        Returns an AlertResult either way, the toast text included.

        Raises:
            AlertInProgressError: this target already has an alert on the wire
        """
        if target in self._in_flight:
            raise AlertInProgressError(target)

        self._in_flight.add(target)
        try:
            return await self._send(target)
        finally:
            self._in_flight.discard(target)

    async def _send(self, target: AlertTarget) -> AlertResult:
        triggered_at = datetime.now(timezone.utc).isoformat()

        if not self.is_configured:
            logger.error(f"[alert] Cannot alert {target.value}: no webhook configured")
            return self._failure(target, triggered_at)

        payload = self.build_payload(target)
        logger.info(f"[alert] Triggering {target.value} alert")

        try:
            response = await self.http_client.post(
                self.webhook_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TimeoutException:
            logger.error(f"[alert] Webhook timed out for {target.value}")
            return self._failure(target, triggered_at)
        except httpx.HTTPError as e:
            logger.error(f"[alert] Cannot reach webhook for {target.value}: {e}")
            return self._failure(target, triggered_at)

        if not response.is_success:
            logger.error(
                f"[alert] Webhook rejected {target.value} alert: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
            return self._failure(target, triggered_at, http_status=response.status_code)

        logger.info(f"[alert] {target.audience} notified (HTTP {response.status_code})")
        return AlertResult(
            success=True,
            target=target,
            title=SUCCESS_TITLE,
            description=f"{target.audience} have been notified of the landslide risk.",
            http_status=response.status_code,
            triggered_at=triggered_at,
        )

    @staticmethod
    def _failure(target: AlertTarget, triggered_at: str, http_status: Optional[int] = None) -> AlertResult:
        return AlertResult(
            success=False,
            target=target,
            title=FAILURE_TITLE,
            description=FAILURE_DESCRIPTION,
            http_status=http_status,
            triggered_at=triggered_at,
        )

    async def close(self):
        await self.http_client.aclose()
