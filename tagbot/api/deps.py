import secrets
from typing import Optional
from fastapi import Header, HTTPException, Request
from sqlmodel import Session

from tagbot.config import BotSettings
from tagbot.repos import TeamsRepo


def get_settings(request: Request) -> BotSettings:
    return request.app.state.settings


def get_db_session(request: Request) -> Session:
    with Session(request.app.state.engine) as session:
        yield session


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
) -> None:
    expected = get_settings(request).admin_api_key
    if not expected:
        raise HTTPException(
            status_code=503,
            detail="Admin API is disabled",
            headers={"Content-Type": "application/problem+json"},
        )
    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=401,
            detail="Invalid API key",
            headers={"Content-Type": "application/problem+json"},
        )


def get_teams_repo(request: Request) -> TeamsRepo:
    return TeamsRepo(get_settings(request).tagall_command)
