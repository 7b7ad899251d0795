# app/utils/clock.py

from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from app.config.database import settings


class Clock:
    """Single source of "now" for the scheduling core, bound to one IANA zone."""

    def __init__(self, timezone: Optional[str] = None):
        self.tz = ZoneInfo(timezone or settings.timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def utcnow(self) -> datetime:
        """Naive UTC instant, the form timestamps are stored in."""
        return self.now().astimezone(ZoneInfo("UTC")).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()

    def tomorrow_window(self) -> Tuple[datetime, datetime]:
        """[start of tomorrow, start of the day after) in the clock's zone."""
        start = datetime.combine(self.today() + timedelta(days=1), time.min, tzinfo=self.tz)
        return start, start + timedelta(days=1)

    def local(self, moment: datetime) -> datetime:
        # Naive datetimes coming back from the database are stored in UTC
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=ZoneInfo("UTC"))
        return moment.astimezone(self.tz)

    def same_day(self, moment: Optional[datetime], other: Optional[datetime] = None) -> bool:
        if moment is None:
            return False
        other = other or self.now()
        return self.local(moment).date() == self.local(other).date()


class FixedClock(Clock):
    """Clock frozen at a given instant; used by tests and manual replays."""

    def __init__(self, frozen: datetime, timezone: Optional[str] = None):
        super().__init__(timezone)
        if frozen.tzinfo is None:
            frozen = frozen.replace(tzinfo=self.tz)
        self.frozen = frozen

    def now(self) -> datetime:
        return self.frozen

    def advance(self, **kwargs) -> None:
        self.frozen = self.frozen + timedelta(**kwargs)


clock = Clock()
