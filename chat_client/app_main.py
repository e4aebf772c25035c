# chat_client/app_main.py
import argparse
import asyncio
import getpass

from chat_common.cipher import MalformedCiphertext
from chat_common.secure_channel import ChannelClosed

from .config import settings
from .network_client import NetworkClient


async def _read_console(prompt: str = "") -> str | None:
    """One line from stdin without blocking the event loop; None at EOF."""
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, input, prompt)
    except EOFError:
        return None


async def _read_password() -> str | None:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, getpass.getpass, "Password: ")
    except EOFError:
        return None


async def _login(client: NetworkClient) -> bool:
    while True:
        username = await _read_console("Nickname: ")
        if username is None:
            return False
        password = await _read_password()
        if password is None:
            return False
        if await client.login(username, password):
            print("Login accepted.")
            return True
        print("Wrong login, try again.")


async def _print_incoming(client: NetworkClient) -> None:
    while True:
        try:
            print(await client.receive())
        except MalformedCiphertext:
            print("[undecryptable message from server]")


async def _send_outgoing(client: NetworkClient) -> None:
    while True:
        line = await _read_console()
        if line is None:
            return
        if line:
            await client.send(line)


async def run(host: str, port: int) -> int:
    client = NetworkClient()
    try:
        await client.connect(host, port)
        if not await _login(client):
            return 0

        incoming = asyncio.create_task(_print_incoming(client))
        outgoing = asyncio.create_task(_send_outgoing(client))
        done, pending = await asyncio.wait({incoming, outgoing}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            task.result()
        return 0
    except ChannelClosed as e:
        print(f"Disconnected: {e}")
        return 1
    finally:
        await client.close()


def parse_args():
    parser = argparse.ArgumentParser(description="RSA Chatroom Client")
    parser.add_argument("--host", default=settings.SERVER_HOST, help="Server host")
    parser.add_argument("--port", type=int, default=settings.SERVER_PORT, help="Server port")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    try:
        raise SystemExit(asyncio.run(run(args.host, args.port)))
    except KeyboardInterrupt:
        print("\nBye.")
