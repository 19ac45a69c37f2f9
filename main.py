#backend/main.py
import logging
from contextlib import asynccontextmanager
from typing import Dict, List

import uvicorn
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from db import Base, engine, get_db
from logic import auth, progression, ranking, store
from logic.errors import AppError, NotFoundError, ValidationError
from models.progress_entry import ProgressEntry  # noqa: F401  registers the table
from models.user import User  # noqa: F401
from schemas import (
    AuthOutput,
    LoginInput,
    PositionOutput,
    RankingEntry,
    RegisterInput,
    UserOut,
    XpInput,
    XpOutput,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        Base.metadata.create_all(bind=engine)
        logger.info("Connected to database %s", engine.url.render_as_string(hide_password=True))
    except SQLAlchemyError:
        logger.exception("Could not connect to the database")
    yield


# --------- App Setup ---------
app = FastAPI(title="CarQuest API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Error Handlers ---------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        return JSONResponse(status_code=exc.status_code, content={"error": "Internal server error"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Malformed request body"})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --------- Auth Endpoints ---------
@app.post("/api/auth/register", response_model=AuthOutput, status_code=201)
def register(data: RegisterInput, db: Session = Depends(get_db)):
    if not data.name or not data.email or not data.password:
        raise ValidationError("Missing required fields")

    user = auth.register(db, data.name, data.email, data.password)
    return {"token": auth.issue_token(user), "user": user}


@app.post("/api/auth/login", response_model=AuthOutput)
def login(data: LoginInput, db: Session = Depends(get_db)):
    if not data.email or not data.password:
        raise ValidationError("Missing required fields")

    user = auth.authenticate(db, data.email, data.password)
    return {"token": auth.issue_token(user), "user": user}


# --------- User Endpoints ---------
@app.get("/api/user/me", response_model=UserOut)
def get_me(claims: Dict = Depends(auth.current_user_claims), db: Session = Depends(get_db)):
    user = store.find_by_id(db, claims["id"])
    if user is None:
        raise NotFoundError("User not found")
    return user


@app.post("/api/user/xp", response_model=XpOutput)
def add_xp(data: XpInput, claims: Dict = Depends(auth.current_user_claims), db: Session = Depends(get_db)):
    activity = progression.Activity(type=data.tipus, name=data.nom, score=data.puntuacio)
    result = progression.grant_xp(db, claims["id"], data.xp_ganado, activity)
    return {"message": result.message, "xp": result.xp, "level": result.level, "rank": result.rank}


# --------- Ranking Endpoints ---------
@app.get("/api/ranking", response_model=List[RankingEntry])
def get_ranking(db: Session = Depends(get_db)):
    return ranking.top_n(db, settings.RANKING_SIZE)


@app.get("/api/ranking/meva-posicio", response_model=PositionOutput)
def get_my_position(claims: Dict = Depends(auth.current_user_claims), db: Session = Depends(get_db)):
    position, xp = ranking.position_of(db, claims["id"])
    return {"position": position, "xp": xp}


@app.get("/api/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
