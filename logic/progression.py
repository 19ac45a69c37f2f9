import bisect
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from sqlalchemy import case, literal
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from logic import store
from logic.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 1000
# xp and score are stored in 32-bit integer columns
MAX_INT = 2 ** 31 - 1


def level_for_xp(xp: int) -> int:
    # every full 1000 XP is one level, starting at level 1
    return max(1, xp // XP_PER_LEVEL + 1)


def level_sql(xp_expr):
    # xp is never negative, so the floor is already >= 1
    return xp_expr // XP_PER_LEVEL + 1


class RankTable:
    """
    Maps cumulative XP to a rank label.

    Thresholds are ``(min_xp, label)`` pairs sorted by ``min_xp``; a user holds
    the label of the greatest threshold not above their XP. The first threshold
    must be 0 so every valid XP total has a rank.
    """

    def __init__(self, thresholds: Iterable[Tuple[int, str]]):
        pairs = [(int(min_xp), str(label)) for min_xp, label in thresholds]
        if not pairs:
            raise ValueError("rank table is empty")
        if pairs[0][0] != 0:
            raise ValueError("first rank threshold must be 0")
        for (prev, _), (cur, _) in zip(pairs, pairs[1:]):
            if cur <= prev:
                raise ValueError("rank thresholds must be strictly ascending")
        if any(not label for _, label in pairs):
            raise ValueError("rank labels must not be empty")

        self.thresholds = pairs
        self._mins = [min_xp for min_xp, _ in pairs]

    def rank_for_xp(self, xp: int) -> str:
        index = bisect.bisect_right(self._mins, xp) - 1
        return self.thresholds[max(index, 0)][1]

    def sql_case(self, xp_expr):
        """SQL ``CASE`` equivalent of :meth:`rank_for_xp` over ``xp_expr``."""
        lowest = self.thresholds[0][1]
        whens = [(xp_expr >= min_xp, label) for min_xp, label in reversed(self.thresholds[1:])]
        if not whens:
            return literal(lowest)
        return case(*whens, else_=lowest)


default_ranks = RankTable(settings.RANK_THRESHOLDS)


def rank_for_xp(xp: int) -> str:
    return default_ranks.rank_for_xp(xp)


@dataclass
class Activity:
    type: Optional[str] = None
    name: Optional[str] = None
    score: Optional[int] = None

    def is_loggable(self) -> bool:
        return bool(self.type and self.name)


@dataclass
class ProgressionResult:
    xp: int
    level: int
    rank: str
    message: str


def grant_xp(db: Session, user_id: int, xp_gained, activity: Optional[Activity] = None,
             ranks: Optional[RankTable] = None) -> ProgressionResult:
    """
    Add ``xp_gained`` to a user and recompute their level and rank.

    The increment runs as one UPDATE so concurrent grants for the same user
    all land. When ``activity`` carries a type and a name, a completed progress
    entry is appended in the same transaction.

    Raises ``ValidationError`` for a missing, non-integer or out of range
    amount or score and ``NotFoundError`` when the user does not exist; in both cases
    nothing is written.
    """
    if isinstance(xp_gained, bool) or not isinstance(xp_gained, int) or not 0 < xp_gained <= MAX_INT:
        raise ValidationError("Invalid XP")
    if activity is not None and activity.score is not None and abs(activity.score) > MAX_INT:
        raise ValidationError("Invalid score")

    ranks = ranks or default_ranks
    try:
        xp, level, rank = store.apply_xp(db, user_id, xp_gained, level_sql, ranks.sql_case)
        if activity is not None and activity.is_loggable():
            store.add_progress_entry(db, user_id, activity.type, activity.name, activity.score or 0)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("XP grant failed for user %s", user_id)
        raise StorageError("Internal server error") from e
    except Exception:
        db.rollback()
        raise

    logger.info("User %s gained %s XP (xp=%s level=%s rank=%s)", user_id, xp_gained, xp, level, rank)
    return ProgressionResult(xp=xp, level=level, rank=rank, message=f"+{xp_gained} XP gained")
