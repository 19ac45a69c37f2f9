# backend/models/user.py

from sqlalchemy import Column, String, Integer, DateTime, func
from sqlalchemy.orm import relationship
from db import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # case-sensitive
    password_hash = Column(String, nullable=False)
    xp = Column(Integer, nullable=False, default=0)
    # level and rank are derived from xp, only the progression engine writes them
    level = Column(Integer, nullable=False, default=1)
    rank = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    progress = relationship("ProgressEntry", back_populates="user", order_by="ProgressEntry.id")
