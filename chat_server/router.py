# chat_server/router.py

from typing import TYPE_CHECKING

from chat_common import protocol
from chat_common.logging_util import setup_logger

from .config import settings

if TYPE_CHECKING:
    from .registry import UserRegistry
    from .connection import ClientSession

logger = setup_logger(__name__, settings.LOG_LEVEL)


class Router:
    """
    Handles routing messages between clients.

    A line is, in order of precedence, the client list command, a private
    message (`@nickname text`), or a chat line for everyone else.
    """
    def __init__(self, registry: "UserRegistry"):
        self.registry = registry

    async def route(self, sender: "ClientSession", line: str) -> None:
        if line == protocol.CLIENTS_COMMAND:
            await self.send_client_list(sender)
            return

        match = protocol.PRIVATE_MESSAGE_PATTERN.fullmatch(line)
        if match:
            await self.send_private_message(sender, match.group(1), match.group(2))
        else:
            await self.registry.broadcast(protocol.chat_line(sender.username, line), sender=sender)

    async def send_client_list(self, sender: "ClientSession") -> None:
        for nickname in await self.registry.nicknames():
            await sender.send_line(protocol.client_list_line(nickname))

    async def send_private_message(self, sender: "ClientSession", recipient_name: str, text: str) -> None:
        recipient = await self.registry.get_session(recipient_name)
        if recipient is None:
            logger.debug("'%s' addressed unknown nickname '%s'.", sender.username, recipient_name)
            await sender.send_line(protocol.WRONG_NICKNAME)
            return

        await self.registry.deliver(recipient, protocol.private_line(sender.username, text))
