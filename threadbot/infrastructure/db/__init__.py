"""
Database Infrastructure Package for ThreadBot

Exports database utilities and dependency providers.
"""

from threadbot.infrastructure.db.database import (
    Database,
    get_database,
    get_session,
    get_session_context,
    init_db,
    close_db,
)

from threadbot.infrastructure.db.dependencies import (
    SessionDep,
    get_chat_repository,
    get_user_repository,
    ChatRepoDep,
    UserRepoDep,
)


__all__ = [
    # Database management
    "Database",
    "get_database",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    # Dependencies
    "SessionDep",
    "get_chat_repository",
    "get_user_repository",
    "ChatRepoDep",
    "UserRepoDep",
]
