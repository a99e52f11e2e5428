"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.realtime import ChangeStream


def get_change_stream(request: Request) -> ChangeStream:
    """Change stream opened in the app lifespan and stored on app.state."""
    return request.app.state.change_stream


DbSession = Annotated[AsyncSession, Depends(get_db)]
Stream = Annotated[ChangeStream, Depends(get_change_stream)]
