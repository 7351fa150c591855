"""
Daily quota gate for email intake.

Counts today's audit records for a user against their configured ceiling.
"Today" starts at local midnight on the processing host.

The check is read-only: two emails from the same user processed at the same
time can both pass before either audit row is written, so the ceiling can be
exceeded by (concurrency - 1). Intake is sequential in the poller and this
gap is accepted.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, time

from guestpass.intake.types import AuditStore, QuotaStatus
from guestpass.observability.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now()


def start_of_local_day(now: datetime) -> datetime:
    """
    Midnight of now's calendar day, timezone-aware.

    A naive now is host-local time and gets the host's offset at midnight, which
    differs from the offset at now on a daylight-saving change day. An aware now
    keeps its tzinfo; a ZoneInfo resolves its own offset for midnight.
    """
    midnight = datetime.combine(now.date(), time.min)
    if now.tzinfo is None:
        return midnight.astimezone()
    return midnight.replace(tzinfo=now.tzinfo)


class QuotaGate:
    def __init__(self, audits: AuditStore, clock: Clock | None = None):
        self.audits = audits
        self._clock = clock or _local_now

    def check(self, user_id: str, max_daily: int) -> QuotaStatus:
        """
        can_process iff today's count < max_daily. Fails closed on a count error.
        """
        try:
            since = start_of_local_day(self._clock())
            current = self.audits.count_since(user_id, since)
        except Exception as e:
            logger.error("Quota count failed for user=%s: %s", user_id, e)
            return QuotaStatus(
                can_process=False,
                current_count=0,
                daily_limit=max_daily,
                remaining=0,
                error=str(e),
            )

        return QuotaStatus(
            can_process=current < max_daily,
            current_count=current,
            daily_limit=max_daily,
            remaining=max(0, max_daily - current),
        )
