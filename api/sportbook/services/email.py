"""Email sending via SMTP.

Payment notifications go out on background tasks so a slow or unreachable mail
server never holds up the request that triggered them.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from email.message import EmailMessage

import aiosmtplib

from sportbook.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class CourtTimes:
    court_name: str
    times: list[str]  # "HH:MM - HH:MM"


@dataclass
class PaymentNotification:
    """What the owner needs to match a bank transfer to a booking."""

    customer_name: str
    customer_phone: str
    field_name: str
    venue_name: str
    price: int
    message: str
    booking_date: date
    courts: list[CourtTimes] = field(default_factory=list)


async def send_email(to: str, subject: str, body: str) -> None:
    """Send a plain-text email via SMTP."""
    message = EmailMessage()
    message["From"] = settings.smtp_from
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)

    await aiosmtplib.send(message, hostname=settings.smtp_host, port=settings.smtp_port)


def render_payment_notification(data: PaymentNotification) -> str:
    court_lines = "\n".join(f"  {court.court_name}: {', '.join(court.times)}" for court in data.courts)
    return (
        f"Hi,\n\n"
        f"{data.customer_name} ({data.customer_phone}) reports having paid for a booking.\n\n"
        f"Venue: {data.venue_name}\n"
        f"Field: {data.field_name}\n"
        f"Date: {data.booking_date.isoformat()}\n"
        f"Courts:\n{court_lines}\n\n"
        f"Amount: {data.price:,}\n"
        f"Transfer reference: {data.message}\n\n"
        f"Please check your account and complete the booking once the transfer arrives.\n\n"
        f"SportBook"
    )


class EmailNotifier:
    async def send(self, owner_email: str, data: PaymentNotification) -> None:
        await send_email(owner_email, f"Payment received: {data.message}", render_payment_notification(data))
        logger.info("Payment notification sent to %s", owner_email)


_in_flight: set[asyncio.Task] = set()


async def _send_logged(notifier: EmailNotifier, owner_email: str, data: PaymentNotification) -> None:
    try:
        await notifier.send(owner_email, data)
    except Exception:
        logger.exception("Failed to send payment notification to %s", owner_email)


def dispatch_notification(notifier: EmailNotifier, owner_email: str, data: PaymentNotification) -> asyncio.Task:
    """Start sending without waiting for it. Failures are logged, never raised."""
    task = asyncio.create_task(_send_logged(notifier, owner_email, data))
    # The loop only keeps weak references to tasks
    _in_flight.add(task)
    task.add_done_callback(_in_flight.discard)
    return task


async def drain_notifications() -> None:
    """Wait for every notification still being sent."""
    while _in_flight:
        await asyncio.gather(*_in_flight)
