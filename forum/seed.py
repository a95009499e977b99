"""
forum/seed.py -- Default boards and the bootstrap admin account.

seed_boards() runs on every API startup and from `python main.py seed`; it is
idempotent and only inserts boards whose slug is missing. create_admin() is
CLI-only -- the server never creates an account with a built-in password.
"""

import logging

from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from core.errors import Conflict
from forum.models import Board
from forum.store import ForumStore

logger = logging.getLogger("fightclub.forum.seed")

DEFAULT_BOARDS: list[Board] = [
    Board(slug="best", name="Daily Best", description="The most popular posts of the day"),
    Board(slug="politics", name="Politics", description="Political discussion"),
    Board(slug="issue", name="Issues", description="Hot topics right now"),
    Board(slug="society", name="Society", description="Debate on social questions"),
    Board(slug="celeb", name="Celebrities", description="Entertainment news"),
    Board(slug="stock", name="Stocks", description="Investing and the economy"),
]


def seed_boards(store: ForumStore, boards: list[Board] = DEFAULT_BOARDS) -> int:
    """Create any missing default boards. Returns how many were created."""
    created = 0
    for board in boards:
        if store.get_board(board.slug) is not None:
            continue
        try:
            store.create_board(board)
        except Conflict:
            # Another process seeded the same slug between the check and the insert.
            continue
        created += 1
        logger.info("Board created: %s", board.slug)
    return created


def create_admin(user_store: UserStore, username: str, email: str, password: str) -> int:
    """Create an admin account. Raises Conflict if the username or email is taken."""
    user_id = user_store.create_user(
        User(username=username, email=email, role=Role.ADMIN),
        hash_password(password),
    )
    logger.info("Admin account created: %s", username)
    return user_id
