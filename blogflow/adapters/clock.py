from datetime import UTC, datetime, timedelta


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)

    def is_past_or_now(self, utc_dt: datetime) -> bool:
        return utc_dt <= self.now()

    def is_future(self, utc_dt: datetime, grace_seconds: int = 0) -> bool:
        return utc_dt > (self.now() - timedelta(seconds=grace_seconds))
