"""Async database engine and session factory for the OAuth record store."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import BridgeSettings


def build_engine(settings_obj: BridgeSettings) -> AsyncEngine:
    return create_async_engine(settings_obj.database_url, echo=settings_obj.echo_sql)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
