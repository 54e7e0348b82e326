# reserve_engine/services/notification_service.py
"""
Post-commit reservation notifications.

Notifiers are only called after a reservation is durably committed. A
notifier may raise; the coordinator logs the failure and the reservation
result is unchanged.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import resend

from ..core.config import Settings, settings
from ..core.exceptions import ServiceException
from ..schemas.reservation import ReservationRecord
from .base import BaseService

logger = logging.getLogger(__name__)


class ReservationNotifier(Protocol):
    def reservation_confirmed(self, reservation: ReservationRecord) -> None: ...


class ConsoleReservationNotifier:
    """Logs confirmations instead of sending them; used in development and tests."""

    def __init__(self) -> None:
        self.sent: list[ReservationRecord] = []

    def reservation_confirmed(self, reservation: ReservationRecord) -> None:
        self.sent.append(reservation)
        logger.info(
            "Reservation confirmed",
            extra={
                "reservation_id": reservation.id,
                "tenant_id": reservation.tenant_id,
                "customer_id": reservation.customer_id,
                "reserved_date": reservation.reserved_date.isoformat(),
                "reserved_time": reservation.reserved_time,
            },
        )


class ResendReservationNotifier(BaseService):
    """
    Sends reservation confirmation emails through Resend.

    Plain-text messages only; templating belongs to the application
    embedding the engine.
    """

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        super().__init__()
        key = api_key or (
            settings.resend_api_key.get_secret_value() if settings.resend_api_key else None
        )
        if not key:
            raise ServiceException("Resend API key not configured")

        resend.api_key = key
        self.from_email = from_email or settings.from_email

    def _build_email(self, reservation: ReservationRecord) -> Dict[str, Any]:
        subject = f"Reservation confirmed for {reservation.reserved_date.isoformat()}"
        lines = [
            f"Hello {reservation.customer_name}," if reservation.customer_name else "Hello,",
            "",
            "Your reservation is confirmed.",
            f"Date: {reservation.reserved_date.isoformat()}",
            f"Time: {reservation.reserved_time}-{reservation.end_time}",
        ]
        if reservation.service_name:
            lines.append(f"Service: {reservation.service_name}")
        if reservation.staff_name:
            lines.append(f"Staff: {reservation.staff_name}")
        lines.append(f"Reservation ID: {reservation.id}")
        return {
            "from": self.from_email,
            "to": reservation.customer_email,
            "subject": subject,
            "text": "\n".join(lines),
        }

    @BaseService.measure_operation("send_reservation_confirmation")
    def reservation_confirmed(self, reservation: ReservationRecord) -> None:
        if not reservation.customer_email:
            self.logger.info(
                "Customer has no email; skipping confirmation",
                extra={"reservation_id": reservation.id},
            )
            return

        try:
            response = resend.Emails.send(self._build_email(reservation))
        except Exception as e:
            self.log_operation(
                "confirmation_email_failed", reservation_id=reservation.id, error=str(e)
            )
            raise ServiceException(f"Confirmation email failed: {e}") from e

        self.log_operation(
            "confirmation_email_sent",
            reservation_id=reservation.id,
            provider_id=response.get("id") if isinstance(response, dict) else None,
        )


def build_notifier(config: Optional[Settings] = None) -> ReservationNotifier:
    """Create the notifier selected by ``EMAIL_PROVIDER``."""
    config = config or settings
    if config.email_provider == "resend":
        api_key = config.resend_api_key.get_secret_value() if config.resend_api_key else None
        return ResendReservationNotifier(api_key=api_key, from_email=config.from_email)
    return ConsoleReservationNotifier()
