"""
Match notification dispatching.

A new match produces one event per party. Delivery is best effort: failures
are logged and counted, never raised to the caller, and the match itself is
the source of truth clients can always query.
"""

import asyncio
from typing import Any, Dict, List, Optional

from swipematch.core.config import settings
from swipematch.core.exceptions import NotificationDeliveryFailure
from swipematch.core.interfaces import NotificationChannel
from swipematch.core.rabbitmq_client import AsyncRabbitMQClient
from swipematch.libs.circuit_breaker import CircuitBreaker
from swipematch.log.logging import logger
from swipematch.metrics.core import MetricNames, increment_counter
from swipematch.models.domain import ActorRole, Match


MATCH_CREATED_EVENT = "match.created"


class RabbitMQNotificationChannel(NotificationChannel):
    """Publishes notification events to a RabbitMQ queue."""

    def __init__(self, client: AsyncRabbitMQClient, queue: str):
        self.client = client
        self.queue = queue

    async def publish(self, event: Dict[str, Any]) -> None:
        try:
            await self.client.send_message(self.queue, event)
        except Exception as e:
            raise NotificationDeliveryFailure(
                f"Could not publish to queue '{self.queue}': {str(e)}"
            ) from e

    async def close(self) -> None:
        await self.client.close()


class LoggingNotificationChannel(NotificationChannel):
    """Writes events to the log; used when notifications are disabled."""

    async def publish(self, event: Dict[str, Any]) -> None:
        logger.info(
            "Notification event {event} for {recipient_id}",
            event=event["event"],
            recipient_id=event["recipient_id"],
            match_id=event["match_id"],
        )


def build_match_events(match: Match) -> List[Dict[str, Any]]:
    """Build the candidate-facing and company-facing events for a match."""
    created_at = match.created_at.isoformat()
    return [
        {
            "event": MATCH_CREATED_EVENT,
            "match_id": match.id,
            "recipient_id": match.candidate_id,
            "recipient_role": ActorRole.CANDIDATE.value,
            "counterpart_id": match.company_id,
            "created_at": created_at,
        },
        {
            "event": MATCH_CREATED_EVENT,
            "match_id": match.id,
            "recipient_id": match.company_id,
            "recipient_role": ActorRole.COMPANY.value,
            "counterpart_id": match.candidate_id,
            "created_at": created_at,
        },
    ]


class MatchNotificationDispatcher:
    """Informs both parties of a new match."""

    def __init__(
        self,
        channel: NotificationChannel,
        breaker: Optional[CircuitBreaker] = None,
        timeout: Optional[float] = None,
    ):
        self.channel = channel
        self.breaker = breaker or CircuitBreaker(
            name="match-notifications",
            failure_threshold=settings.notification_failure_threshold,
            reset_timeout=settings.notification_reset_timeout,
        )
        self.timeout = settings.notification_timeout if timeout is None else timeout

    async def _publish(self, event: Dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(self.channel.publish(event), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise NotificationDeliveryFailure(
                f"Publishing {event['event']} timed out after {self.timeout}s"
            ) from e

    async def notify(self, match: Match) -> None:
        """
        Send the match events to both parties.

        Never raises; undelivered events are logged as delivery failures.

        Args:
            match: The newly created match
        """
        for event in build_match_events(match):
            if not await self.breaker.is_allowed():
                logger.warning(
                    "Notification channel circuit open, skipping {recipient_role} event for match {match_id}",
                    recipient_role=event["recipient_role"],
                    match_id=match.id,
                )
                increment_counter(MetricNames.NOTIFICATIONS_FAILED, {"reason": "circuit_open"})
                continue

            try:
                await self._publish(event)
            except NotificationDeliveryFailure as e:
                await self.breaker.record_failure()
                increment_counter(MetricNames.NOTIFICATIONS_FAILED, {"reason": "delivery"})
                logger.error(
                    "Failed to deliver match notification",
                    match_id=match.id,
                    recipient_id=event["recipient_id"],
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            except Exception as e:
                await self.breaker.record_failure()
                increment_counter(MetricNames.NOTIFICATIONS_FAILED, {"reason": "unexpected"})
                logger.exception(
                    "Unexpected error delivering match notification",
                    match_id=match.id,
                    recipient_id=event["recipient_id"],
                    error_type=type(e).__name__,
                )
                continue

            await self.breaker.record_success()
            increment_counter(MetricNames.NOTIFICATIONS_SENT, {"role": event["recipient_role"]})

        logger.info(
            "Match notification dispatched for {match_id}",
            match_id=match.id,
            candidate_id=match.candidate_id,
            company_id=match.company_id,
        )

    async def close(self) -> None:
        await self.channel.close()


def build_notification_channel() -> NotificationChannel:
    """Pick the channel configured in settings."""
    if settings.notifications_enabled:
        logger.info(
            "Match notifications go to RabbitMQ queue {queue}",
            queue=settings.match_notification_queue,
        )
        return RabbitMQNotificationChannel(
            AsyncRabbitMQClient(rabbitmq_url=settings.rabbitmq_url),
            settings.match_notification_queue,
        )
    logger.info("Match notifications are disabled, events will only be logged")
    return LoggingNotificationChannel()
