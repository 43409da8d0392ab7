from __future__ import annotations

import datetime
import inspect
import logging
import typing as t
import uuid

from mutumwa.exceptions import ConversationBusyError
from mutumwa.exceptions import TransportError
from mutumwa.stream.assembler import UpdateCallback
from mutumwa.types.update import Created
from mutumwa.types.update import Finalized
from mutumwa.types.update import MessageUpdate
from mutumwa.types.update import Updated
from mutumwa.utils import truncate
from mutumwa.webhook import WebhookClient
from mutumwa.webhook import WebhookRequest

logger = logging.getLogger("mutumwa.chat")

FALLBACK_REPLY = "Sorry, I couldn't process your message. Please try again."
"""Assistant message appended when a reply cannot be streamed."""

TITLE_LIMIT = 50
"""Characters of the first message kept in a thread title."""


def new_user_id() -> str:
    """Generate an identifier for a first-time user."""
    return str(uuid.uuid4())


def derive_title(text: str) -> str:
    """Thread title from the first user message."""
    return truncate(text.strip(), TITLE_LIMIT)


class ChatMessage:
    """A message shown in a conversation.

    Attributes:
        id: Message identifier.
        text: Current text. Assistant messages change while streaming.
        sender: ``"user"`` or ``"assistant"``.
        timestamp: When the message was added (UTC).
        is_final: False while an assistant reply is still streaming.
    """

    __slots__ = ("id", "text", "sender", "timestamp", "is_final")

    def __init__(
        self,
        *,
        text: str,
        sender: t.Literal["user", "assistant"],
        id: str | None = None,  # pylint: disable=redefined-builtin
        timestamp: datetime.datetime | None = None,
        is_final: bool = True,
    ) -> None:
        self.id = id or str(uuid.uuid4())
        self.text = text
        self.sender = sender
        self.timestamp = timestamp or datetime.datetime.now(datetime.timezone.utc)
        self.is_final = is_final

    def __repr__(self) -> str:
        return f"ChatMessage(id={self.id!r}, sender={self.sender!r}, text={self.text!r})"


class Conversation:
    """Client-side state of one chat thread.

    Sends user messages through a ``WebhookClient`` and applies the reply
    updates to its message list, the way a chat view renders them: the
    assistant bubble appears on ``Created`` (which also ends the "awaiting
    reply" state), its text follows each ``Updated``.

    If the reply stream fails, whatever part of the reply already arrived is
    left in place and a separate fallback assistant message is added.

    Attributes:
        session_id: Thread identifier sent to the webhook.
        user_id: User identifier sent to the webhook.
        domain: Domain value whose webhook answers; None for the default.
        language: Target language for replies; None for the client's
            configured default.
        messages: Messages in display order.
        title: Thread title, set from the first user message.
        awaiting_reply: True from sending until the reply bubble appears.

    Example:
        ```python
        conversation = Conversation(user_id=new_user_id(), language="shona")
        async with WebhookClient() as client:
            reply = await conversation.send(client, "Ndingabhadhara sei magetsi?")
            print(reply.text)
        ```
    """

    def __init__(
        self,
        *,
        session_id: str | None = None,
        user_id: str | None = None,
        domain: str | None = None,
        language: str | None = None,
    ) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self.user_id = user_id or new_user_id()
        self.domain = domain
        self.language = language
        self.messages: list[ChatMessage] = []
        self.title = ""
        self.awaiting_reply = False
        self._in_flight = False

    @property
    def last_message(self) -> str:
        """Text of the latest message, for thread previews."""
        return self.messages[-1].text if self.messages else ""

    async def send(
        self,
        client: WebhookClient,
        text: str,
        *,
        on_update: UpdateCallback | None = None,
    ) -> ChatMessage | None:
        """Send ``text`` and stream the reply into this conversation.

        Args:
            client: Client used to reach the webhook.
            text: The user's message. Blank text is ignored.
            on_update: Called with each update after it has been applied,
                before the next chunk is read. May be a coroutine function.

        Returns:
            The assistant message (the fallback message if the reply failed),
            or None if nothing was sent or the reply carried no content.

        Raises:
            ConversationBusyError: If a reply is still in flight.
            ConfigError: If the conversation's domain is not configured.
        """
        if not text.strip():
            return None
        if self._in_flight:
            raise ConversationBusyError(f"Conversation {self.session_id} is awaiting a reply")
        domain = client.config.domain(self.domain)

        if not self.messages:
            self.title = derive_title(text)
        self.messages.append(ChatMessage(text=text, sender="user"))

        language = self.language or client.config.default_language
        request = WebhookRequest(text=text,
                                 target_language=language,
                                 session_id=self.session_id,
                                 user_id=self.user_id)
        reply: ChatMessage | None = None
        self._in_flight = True
        self.awaiting_reply = True
        try:
            updates = await client.stream_reply(request, domain=domain)
            async with updates:
                async for update in updates:
                    reply = self.apply(update) or reply
                    if on_update is not None:
                        result = on_update(update)
                        if inspect.isawaitable(result):
                            await result
        except TransportError as e:
            logger.error("Reply for session %s failed: %s", self.session_id, e)
            reply = ChatMessage(text=FALLBACK_REPLY, sender="assistant")
            self.messages.append(reply)
        finally:
            self._in_flight = False
            self.awaiting_reply = False
        return reply

    def apply(self, update: MessageUpdate) -> ChatMessage | None:
        """Apply one reply update; returns the affected assistant message."""
        if isinstance(update, Created):
            message = ChatMessage(id=update.id, text="", sender="assistant", is_final=False)
            self.messages.append(message)
            self.awaiting_reply = False
            return message

        message = self._find(update.id)
        if message is None:
            logger.warning("Update for unknown message %s ignored", update.id)
            return None
        if isinstance(update, Updated):
            message.text = update.text
        elif isinstance(update, Finalized):
            message.is_final = True
        return message

    def _find(self, message_id: str) -> ChatMessage | None:
        for message in reversed(self.messages):
            if message.id == message_id:
                return message
        return None
