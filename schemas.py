from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_INT = 2 ** 31 - 1


# Request fields are optional so empty or missing values get the same 400
class RegisterInput(BaseModel):
    name: Optional[str] = Field(None, examples=["Laia"])
    email: Optional[str] = Field(None, examples=["laia@example.com"])
    password: Optional[str] = Field(None, examples=["s3cret-pass"])


class LoginInput(BaseModel):
    email: Optional[str] = Field(None, examples=["laia@example.com"])
    password: Optional[str] = Field(None, examples=["s3cret-pass"])


class XpInput(BaseModel):
    xp_ganado: Optional[int] = Field(None, examples=[100], le=MAX_INT)
    tipus: Optional[str] = Field(None, examples=["test"])
    nom: Optional[str] = Field(None, examples=["Senyals de trànsit"])
    puntuacio: Optional[int] = Field(None, examples=[8], ge=-MAX_INT, le=MAX_INT)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    xp: int
    level: int
    rank: str
    created_at: Optional[datetime] = None


class AuthOutput(BaseModel):
    token: str
    user: UserOut


class XpOutput(BaseModel):
    message: str
    xp: int
    level: int
    rank: str


class RankingEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    xp: int
    level: int
    rank: str
    position: int


class PositionOutput(BaseModel):
    position: int
    xp: int

