"""Settings loaded from STUDYTIMER_* environment variables and an optional .env file."""
from datetime import timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings

from studytimer.levels import LevelCurve, PointRate


class Settings(BaseSettings):
    # Storage
    db_path: str = str(Path.home() / ".studytimer" / "studytimer.db")
    user_id: str = "local"

    # Calendar day boundaries for streaks
    timezone: str = "UTC"

    # Ladders
    term_slope: int = 600
    term_offset: int = 500
    account_slope: int = 1200
    account_offset: int = 900
    level_ceiling: int = 5000

    # Points per whole block of study minutes
    points_per_block: int = 180
    block_minutes: int = 5

    # Display
    top_courses: int = 3
    log_level: str = "WARNING"

    model_config = {"env_file": ".env", "env_prefix": "STUDYTIMER_", "extra": "ignore"}

    def zone(self) -> tzinfo:
        if self.timezone.upper() in ("UTC", "Z"):
            return timezone.utc
        return ZoneInfo(self.timezone)

    def rate(self) -> PointRate:
        return PointRate(self.points_per_block, self.block_minutes)

    def term_curve(self, cache=None, lock=None) -> LevelCurve:
        return LevelCurve(self.term_slope, self.term_offset, self.level_ceiling, cache, lock)

    def account_curve(self, cache=None, lock=None) -> LevelCurve:
        return LevelCurve(self.account_slope, self.account_offset, self.level_ceiling, cache, lock)


settings = Settings()
