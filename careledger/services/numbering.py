"""
Human-readable reference numbers.

Format: {PREFIX}-{YEAR}-{SEQUENCE:06d}
Example: CLM-2026-000001
"""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

CLAIM_PREFIX = "CLM"
ENROLLMENT_PREFIX = "ENR"
MEMBERSHIP_CARD_PREFIX = "HMO"
TRANSACTION_PREFIX = "TXN"
PERSONAL_WALLET_PREFIX = "PW"
SPONSORED_WALLET_PREFIX = "SW"
SPONSORSHIP_PREFIX = "SP"


async def generate_number(
    session: AsyncSession,
    column: InstrumentedAttribute,
    prefix: str,
) -> str:
    """
    Next number for ``prefix`` in the current year.

    Uses the max existing number so gaps left by rolled-back transactions
    are never reused out of order. Pending objects must be flushed first.
    """
    year = datetime.now(timezone.utc).year
    pattern = f"{prefix}-{year}-"

    result = await session.execute(
        select(func.max(column)).where(column.like(f"{pattern}%"))
    )
    current = result.scalar_one_or_none()

    next_seq = 1
    if current:
        try:
            next_seq = int(current.split("-")[-1]) + 1
        except (ValueError, IndexError):
            next_seq = 1

    return f"{pattern}{next_seq:06d}"
