"""
Daily login window evaluation for employee accounts.

Bounds are stored as zero-padded "HH:MM:SS" strings, so comparisons are plain
string comparisons. No timezone conversion happens here: stored bounds and the
clock passed in are assumed to share one timezone.
"""
import re
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional, Union

TIME_OF_DAY_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])(?::([0-5][0-9]))?$")


@dataclass(frozen=True)
class TimeWindowResult:
    allowed: bool
    current_time: str
    message: Optional[str] = None


def normalize_time_of_day(value: Optional[str]) -> Optional[str]:
    """
    Normalize "H:MM", "HH:MM" or "HH:MM:SS" to "HH:MM:SS".

    Empty values normalize to None (unrestricted). Anything else raises ValueError.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    match = TIME_OF_DAY_PATTERN.match(value)
    if not match:
        raise ValueError("Time must be in HH:MM or HH:MM:SS format")
    hours, minutes, seconds = match.groups()
    return f"{int(hours):02d}:{minutes}:{seconds or '00'}"


def format_time_of_day(now: Union[datetime, time]) -> str:
    return now.strftime("%H:%M:%S")


def check_login_time(
    login_start_time: Optional[str],
    login_end_time: Optional[str],
    now: Optional[Union[datetime, time]] = None,
) -> TimeWindowResult:
    """
    Decide whether `now` falls inside the daily window [start, end].

    Both ends are inclusive. When start > end the window wraps past midnight.
    A missing bound on either side means the account is unrestricted.
    """
    current_time = format_time_of_day(now if now is not None else datetime.now())

    if not login_start_time or not login_end_time:
        return TimeWindowResult(allowed=True, current_time=current_time)

    start = login_start_time
    end = login_end_time

    if start > end:
        allowed = current_time >= start or current_time <= end
    else:
        allowed = start <= current_time <= end

    if allowed:
        return TimeWindowResult(allowed=True, current_time=current_time)

    return TimeWindowResult(
        allowed=False,
        current_time=current_time,
        message=f"Login allowed only between {start} and {end}",
    )
