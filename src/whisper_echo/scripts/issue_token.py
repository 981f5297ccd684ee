# src/whisper_echo/scripts/issue_token.py
"""Issue a bearer token for local development, creating the user if needed."""

from __future__ import annotations

import argparse

from sqlalchemy import select

from whisper_echo.core.security import create_access_token
from whisper_echo.db.session import SessionLocal, create_tables
from whisper_echo.models import User


def issue_token(username: str) -> str:
    db = SessionLocal()
    try:
        user = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
        if user is None:
            user = User(username=username)
            db.add(user)
            db.commit()
            db.refresh(user)
        return create_access_token(user.id)
    finally:
        db.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Print a JWT for a (possibly new) user.")
    parser.add_argument("username")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables first (handy with the default SQLite database).",
    )
    args = parser.parse_args(argv)

    if args.create_tables:
        create_tables()
    print(issue_token(args.username))


if __name__ == "__main__":
    main()
