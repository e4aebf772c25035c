# chat_server/manage.py

"""
Credential store maintenance.

    python -m chat_server.manage add alice s3cret
    python -m chat_server.manage remove alice
    python -m chat_server.manage list
"""

import argparse
import asyncio
import sys

from chat_common import protocol

from .auth import hash_password
from .config import settings
from .db_async import Database


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Manage RSA Chatroom users")
    parser.add_argument("--db", default=settings.DATABASE_PATH, help="Path to the credential database")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Create a user")
    add.add_argument("username")
    add.add_argument("password")

    remove = commands.add_parser("remove", help="Delete a user")
    remove.add_argument("username")

    commands.add_parser("list", help="List all users")
    return parser.parse_args(argv)


async def run(args) -> int:
    db = Database(args.db)
    await db.connect()
    try:
        if args.command == "add":
            if not protocol.is_valid_nickname(args.username):
                print(f"Invalid username '{args.username}': use letters, digits and '_' only.")
                return 1
            if await db.add_user(args.username, hash_password(args.password)):
                print(f"User '{args.username}' created.")
                return 0
            print(f"User '{args.username}' already exists.")
            return 1

        if args.command == "remove":
            if await db.remove_user(args.username):
                print(f"User '{args.username}' removed.")
                return 0
            print(f"User '{args.username}' not found.")
            return 1

        for username in await db.list_usernames():
            print(username)
        return 0
    finally:
        await db.close()


def main(argv=None) -> int:
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
