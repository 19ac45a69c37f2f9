from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logic.errors import ConflictError, NotFoundError
from models.progress_entry import ProgressEntry
from models.user import User


def create_user(db: Session, name: str, email: str, password_hash: str, rank: str) -> User:
    if find_by_email(db, email) is not None:
        raise ConflictError("This email is already registered")

    user = User(name=name, email=email, password_hash=password_hash, xp=0, level=1, rank=rank)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race against another registration with the same email
        db.rollback()
        raise ConflictError("This email is already registered")
    db.refresh(user)
    return user


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def find_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def apply_xp(db: Session, user_id: int, delta: int, level_sql, rank_sql) -> Tuple[int, int, str]:
    """
    Increment a user's XP and rewrite level and rank from the new total.

    ``level_sql`` and ``rank_sql`` build the derived columns from the SQL
    expression of the new XP, so the whole read-modify-write is a single
    UPDATE. The caller commits.
    """
    new_xp = User.xp + delta
    stmt = (
        update(User)
        .where(User.id == user_id)
        .values(xp=new_xp, level=level_sql(new_xp), rank=rank_sql(new_xp))
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError("User not found")

    # the row stays locked by this transaction until commit
    row = db.execute(select(User.xp, User.level, User.rank).where(User.id == user_id)).one()
    return row.xp, row.level, row.rank


def add_progress_entry(db: Session, user_id: int, activity_type: str, activity_name: str,
                       score: int = 0) -> ProgressEntry:
    entry = ProgressEntry(
        user_id=user_id,
        activity_type=activity_type,
        activity_name=activity_name,
        score=score,
        completed=True,
    )
    db.add(entry)
    return entry
