"""Wall clock used by every service, injectable for tests."""

from datetime import date, datetime


class SystemClock:
    """Local wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> str:
        """Today's date in YYYY-MM-DD format."""
        return date.today().isoformat()
