"""
Column types mapping entity values onto plain integers in the store.
"""
import math
from datetime import datetime, timedelta, timezone

from sqlalchemy import Integer, SmallInteger
from sqlalchemy.types import TypeDecorator

import colors

# Persisted in place of an absent advance notice
NO_ADVANCE = -1


def epoch_seconds(value: datetime) -> int:
    """Whole seconds since the UTC epoch, as stored. Naive values are local time."""
    return math.floor(value.timestamp())


class ColorCode(TypeDecorator):
    """Colour as a small integer code, ``colors.UNSET`` for no colour."""
    impl = SmallInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return colors.encode(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return colors.decode(value)


class EpochSeconds(TypeDecorator):
    """
    Datetime stored as whole seconds since the UTC epoch.

    Values load in the local zone of the reading process, so the wall-clock
    time shown for a row follows the machine's current zone setting.
    """
    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return epoch_seconds(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return datetime.fromtimestamp(value, tz=timezone.utc).astimezone()


class AdvanceSeconds(TypeDecorator):
    """Timedelta stored as whole seconds, ``NO_ADVANCE`` when absent."""
    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return NO_ADVANCE
        return int(value.total_seconds())

    def process_result_value(self, value, dialect):
        if value is None or value == NO_ADVANCE:
            return None
        return timedelta(seconds=value)
