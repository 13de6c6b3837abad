"""Payment ledger and bank-transfer QR payloads.

There is no gateway: the customer scans a VietQR image that pre-fills the
venue's bank account, the amount and a reference message, and the owner marks
the booking completed once the money shows up.
"""

from dataclasses import dataclass
from urllib.parse import quote, urlencode

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sportbook.core.config import settings
from sportbook.models.booking import Payment, PaymentStatus
from sportbook.models.venue import Venue


@dataclass(frozen=True)
class PaymentInstructions:
    bank_name: str
    bank_account: str
    bank_account_name: str | None
    amount: int
    message: str
    qr_url: str


def payment_reference(booking_id: int) -> str:
    return f"{settings.payment_reference_prefix} {booking_id}"


def build_qr_url(bank_name: str, bank_account: str, amount: int, message: str) -> str:
    path = f"{quote(bank_name)}-{quote(bank_account)}-{settings.qr_template}.jpg"
    query = urlencode({"amount": amount, "addInfo": message}, quote_via=quote)
    return f"{settings.qr_base_url}/{path}?{query}"


def payment_instructions(venue: Venue, amount: int, booking_id: int) -> PaymentInstructions:
    message = payment_reference(booking_id)
    return PaymentInstructions(
        bank_name=venue.bank_name,
        bank_account=venue.bank_account_number,
        bank_account_name=venue.bank_account_name,
        amount=amount,
        message=message,
        qr_url=build_qr_url(venue.bank_name, venue.bank_account_number, amount, message),
    )


class PaymentLedger:
    async def create(self, db: AsyncSession, booking_id: int, user_id: int, amount: int, message: str) -> Payment:
        payment = Payment(booking_id=booking_id, user_id=user_id, amount=amount, message=message)
        db.add(payment)
        await db.flush()
        return payment

    async def update(self, db: AsyncSession, booking_id: int, status: PaymentStatus) -> Payment | None:
        result = await db.execute(select(Payment).where(Payment.booking_id == booking_id).with_for_update())
        payment = result.scalar_one_or_none()
        if payment is not None:
            payment.status = status
        return payment
