from dataclasses import dataclass
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from logic.errors import NotFoundError, ValidationError
from models.user import User


@dataclass
class RankingRow:
    id: int
    name: str
    xp: int
    level: int
    rank: str
    position: int


def _position_column():
    # standard competition ranking: equal XP shares a position, the next
    # distinct XP resumes at 1 + number of users strictly above it
    return func.rank().over(order_by=User.xp.desc()).label("position")


def top_n(db: Session, n: int = 10) -> List[RankingRow]:
    """Users with the most XP, best first, each with their ranking position."""
    if n < 1:
        raise ValidationError("Ranking size must be at least 1")

    stmt = (
        select(User.id, User.name, User.xp, User.level, User.rank, _position_column())
        .order_by(User.xp.desc(), User.id)
        .limit(n)
    )
    return [
        RankingRow(id=r.id, name=r.name, xp=r.xp, level=r.level, rank=r.rank, position=r.position)
        for r in db.execute(stmt)
    ]


def position_of(db: Session, user_id: int) -> Tuple[int, int]:
    """Return ``(position, xp)`` of one user within the full standings."""
    ranked = select(User.id, User.xp, _position_column()).subquery()
    row = db.execute(
        select(ranked.c.position, ranked.c.xp).where(ranked.c.id == user_id)
    ).first()
    if row is None:
        raise NotFoundError("User not found")
    return row.position, row.xp
