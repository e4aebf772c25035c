# chat_common/protocol.py

"""
Application payloads exchanged after the key exchange.
These are the ONLY fixed strings the server and the client agree on.
"""

import re

# --- Grammars ---
NICKNAME_PATTERN = re.compile(r"\w+")
PRIVATE_MESSAGE_PATTERN = re.compile(r"@(\w+) (.*)")

# --- Commands sent by clients ---
CLIENTS_COMMAND = ":clients"

# --- Server replies ---
LOGIN_ACCEPTED = "LOGIN ACCEPTED"
WRONG_LOGIN = "WRONG LOGIN"
WRONG_NICKNAME = "SERVER: WRONG NICKNAME"


def is_valid_nickname(nickname: str) -> bool:
    return NICKNAME_PATTERN.fullmatch(nickname) is not None


def joined_notice(username: str) -> str:
    return f"{username} has joined this chatting room"


def left_notice(username: str) -> str:
    return f"{username} has disconnected this chatting room"


def chat_line(username: str, text: str) -> str:
    return f"{username}: {text}"


def private_line(username: str, text: str) -> str:
    return f"PRIVATE {username}: {text}"


def client_list_line(nickname: str) -> str:
    return f"\t{nickname}"
