"""
Tag and Plan tables.

Deleting a Tag that is still referenced by a Plan is refused by the store
(ON DELETE RESTRICT); retag or delete those Plans first.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, SmallInteger, Text, event, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

import colors
from coltypes import AdvanceSeconds, ColorCode, EpochSeconds, NO_ADVANCE, epoch_seconds

MAX_TAGS = 256


class InvalidEntityError(ValueError):
    pass


class Base(DeclarativeBase):
    pass


class Tag(Base):
    """
    A named category used to colour Plans in the timeline.

    ``border`` and ``fill`` may be left unset to use the default theme;
    ``color`` (the text colour) is always required.
    """
    __tablename__ = "tag"
    __table_args__ = (
        CheckConstraint(f"id >= 0 AND id < {MAX_TAGS}", name="tag_id_range"),
    )

    id: Mapped[int] = mapped_column(SmallInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    border: Mapped[Optional[colors.Color]] = mapped_column(
        ColorCode, nullable=False, server_default=text(str(colors.UNSET))
    )
    fill: Mapped[Optional[colors.Color]] = mapped_column(
        ColorCode, nullable=False, server_default=text(str(colors.UNSET))
    )
    color: Mapped[colors.Color] = mapped_column(ColorCode, nullable=False)

    plans: Mapped[List["Plan"]] = relationship(back_populates="tag", passive_deletes="all")

    @validates("id")
    def _check_id(self, key, value):
        if value is None or isinstance(value, bool) or not 0 <= value < MAX_TAGS:
            raise InvalidEntityError(f"tag id must be in 0..{MAX_TAGS - 1}, got {value!r}")
        return value

    @validates("name")
    def _check_name(self, key, value):
        if not value:
            raise InvalidEntityError(f"{key} must not be empty")
        return value

    @validates("border", "fill", "color")
    def _check_color(self, key, value):
        if value is None:
            if key == "color":
                raise InvalidEntityError("tag color is required")
            return None
        try:
            return colors.to_color(value)
        except (TypeError, ValueError) as e:
            raise InvalidEntityError(f"invalid {key}: {e}") from e

    def __repr__(self):
        return f"Tag(id={self.id!r}, name={self.name!r})"


class Plan(Base):
    """
    One scheduled study session or task.

    ``start`` and ``until`` are stored as absolute points in time and come
    back in the reader's local zone. A zone change between creating a Plan
    and its notification shifts the displayed wall-clock time, not the
    moment the notification is due.
    """
    __tablename__ = "plan"
    __table_args__ = (
        CheckConstraint("id >= 0", name="plan_id_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    start: Mapped[datetime] = mapped_column(EpochSeconds, nullable=False)
    until: Mapped[datetime] = mapped_column(EpochSeconds, nullable=False)
    advance: Mapped[Optional[timedelta]] = mapped_column(
        AdvanceSeconds, nullable=False, server_default=text(str(NO_ADVANCE))
    )
    done: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tag_id: Mapped[Optional[int]] = mapped_column(
        SmallInteger, ForeignKey("tag.id", ondelete="RESTRICT"), nullable=True
    )
    notify: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Reserved for timer integration, stored as given
    porsmo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    tag: Mapped[Optional[Tag]] = relationship(back_populates="plans")

    @validates("id")
    def _check_id(self, key, value):
        if value is None or isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidEntityError(f"plan id must be a non-negative integer, got {value!r}")
        return value

    @validates("name")
    def _check_name(self, key, value):
        if not value:
            raise InvalidEntityError(f"{key} must not be empty")
        return value

    @validates("start", "until")
    def _check_window(self, key, value):
        if not isinstance(value, datetime):
            raise InvalidEntityError(f"{key} must be a datetime, got {value!r}")
        start = value if key == "start" else self.start
        until = value if key == "until" else self.until
        if start is not None and until is not None:
            _check_order(start, until)
        return value

    @validates("advance")
    def _check_advance(self, key, value):
        if value is None:
            return None
        if not isinstance(value, timedelta):
            raise InvalidEntityError(f"{key} must be a timedelta, got {value!r}")
        if value < timedelta(0):
            raise InvalidEntityError("advance must not be negative")
        return value

    @property
    def duration(self) -> timedelta:
        return self.until - self.start

    @property
    def notify_at(self) -> datetime:
        """When the notification should fire: ``advance`` before ``start``."""
        if self.advance is None:
            return self.start
        return self.start - self.advance

    def is_notification_due(self, now: datetime) -> bool:
        if not self.notify or self.done:
            return False
        # timestamps let naive (local) and aware values mix
        return self.notify_at.timestamp() <= now.timestamp() < self.until.timestamp()

    def __repr__(self):
        return f"Plan(id={self.id!r}, name={self.name!r}, start={self.start!r})"


def _check_order(start, until):
    # compared as stored, whole seconds since the epoch
    if epoch_seconds(until) <= epoch_seconds(start):
        raise InvalidEntityError(f"until ({until}) must be after start ({start})")


@event.listens_for(Plan, "before_insert")
@event.listens_for(Plan, "before_update")
def _check_plan(mapper, connection, target):
    if target.start is None or target.until is None:
        raise InvalidEntityError("plan needs both start and until")
    _check_order(target.start, target.until)
