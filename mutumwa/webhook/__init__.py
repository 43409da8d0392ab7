from __future__ import annotations

import logging
import typing as t

import httpx
import tenacity

from mutumwa.config import Domain
from mutumwa.config import MutumwaConfig
from mutumwa.exceptions import TransportError
from mutumwa.exceptions import WebhookStatusError
from mutumwa.helpers.mixin import AsyncContextMixin
from mutumwa.stream.assembler import StreamingReplyAssembler
from mutumwa.types.stream import AsyncStream
from mutumwa.types.update import MessageUpdate

logger = logging.getLogger("mutumwa.webhook")


class WebhookRequest(t.NamedTuple):
    """One user message addressed to a domain webhook.

    Attributes:
        text: The user's message.
        target_language: Language the reply should be written in, e.g.
            ``"english"`` or ``"shona"``.
        session_id: Conversation (thread) the message belongs to.
        user_id: Identifier of the sending user.
    """

    text: str
    target_language: str
    session_id: str
    user_id: str

    def to_form(self) -> dict[str, str]:
        """Form fields as the webhook expects them."""
        return {
            "text": self.text,
            "targetLanguage": self.target_language,
            "sessionId": self.session_id,
            "userId": self.user_id,
        }

    def to_multipart(self) -> dict[str, tuple[None, bytes]]:
        """Form fields as filename-less multipart parts for httpx ``files=``."""
        return {name: (None, value.encode("utf-8")) for name, value in self.to_form().items()}


class ResponseBody:
    """Byte source over a streamed response that closes the response."""

    __slots__ = ("response",)

    def __init__(self, response: httpx.Response) -> None:
        self.response = response

    def __aiter__(self) -> t.AsyncIterator[bytes]:
        return self.response.aiter_bytes()

    async def aclose(self) -> None:
        await self.response.aclose()


class WebhookClient(AsyncContextMixin):
    """Send user messages to domain webhooks and stream the replies.

    The request is a multipart form POST (``text``, ``targetLanguage``,
    ``sessionId``, ``userId``); the reply body is handed to a
    ``StreamingReplyAssembler``.

    Attributes:
        config: Client configuration (domains and HTTP settings).
        http_client: The underlying ``httpx.AsyncClient``.
        assembler: Reply assembler used for every stream.

    Args:
        config: Client configuration. Defaults to the built-in domains.
        http_client: Client to use instead of creating one. A client passed
            in is not closed by ``close()``.
        assembler: Assembler to use instead of a default UTF-8 one.

    Example:
        ```python
        async with WebhookClient(load_config(".config.yml")) as client:
            updates = await client.stream_reply(
                WebhookRequest(
                    text="Mhoro",
                    target_language="shona",
                    session_id=session_id,
                    user_id=user_id,
                ),
                domain="zesa",
            )
            async for update in updates:
                ...
        ```

    Note:
        - Only opening the connection is retried (``webhook.max_retries``
          attempts, on ``httpx.TransportError``). Once the body is flowing a
          failure surfaces as ``TransportError``.
        - Non-2xx responses raise ``WebhookStatusError`` before any update.
    """

    def __init__(
        self,
        config: MutumwaConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        assembler: StreamingReplyAssembler | None = None,
    ) -> None:
        self.config = config or MutumwaConfig()
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=self.config.webhook.timeout,
            headers=self.config.webhook.headers,
        )
        self.assembler = assembler or StreamingReplyAssembler()
        logger.debug("Initialized WebhookClient with %s domains, timeout=%s",
                     len(self.config.domains), self.config.webhook.timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def stream_reply(
        self,
        request: WebhookRequest,
        *,
        domain: Domain | str | None = None,
        message_id: str | None = None,
    ) -> AsyncStream[MessageUpdate]:
        """Send ``request`` and return the stream of reply updates.

        Args:
            request: The user message.
            domain: Domain (or its value) whose webhook receives the message.
                Defaults to the configured default domain.
            message_id: Identifier for the assistant message, generated when
                omitted.

        Returns:
            Single-pass stream of ``Created``/``Updated``/``Finalized``.
            Close it (or exhaust it) to release the HTTP response.

        Raises:
            ValueError: If the message text is blank.
            ConfigError: If ``domain`` names an unknown domain.
            TransportError: If the webhook cannot be reached.
            WebhookStatusError: If the webhook answers with an error status.
        """
        if not request.text.strip():
            raise ValueError("Message text must not be blank")
        if not isinstance(domain, Domain):
            domain = self.config.domain(domain)

        response = await self._open(domain, request)
        body = ResponseBody(response)
        return self.assembler.assemble(body, message_id=message_id)

    async def _open(self, domain: Domain, request: WebhookRequest) -> httpx.Response:
        settings = self.config.webhook
        url = str(domain.webhook_url)

        @tenacity.retry(stop=tenacity.stop_after_attempt(settings.max_retries),
                        wait=tenacity.wait_fixed(settings.retry_wait),
                        retry=tenacity.retry_if_exception_type(httpx.TransportError),
                        reraise=True)
        async def _send() -> httpx.Response:
            http_request = self.http_client.build_request("POST",
                                                          url,
                                                          files=request.to_multipart())
            return await self.http_client.send(http_request, stream=True)

        logger.debug("Posting message to %s webhook (session=%s, language=%s, %s chars)",
                     domain.value, request.session_id, request.target_language,
                     len(request.text))
        try:
            response = await _send()
        except httpx.TransportError as e:
            logger.warning("Cannot reach %s webhook: %s", domain.value, e)
            raise TransportError(f"Cannot reach webhook {url}: {e}") from e

        if not response.is_success:
            await response.aclose()
            logger.warning("Webhook %s answered with status %s", domain.value,
                           response.status_code)
            raise WebhookStatusError(f"HTTP error! status: {response.status_code}",
                                     status_code=response.status_code)

        logger.debug("Webhook %s answered %s, streaming reply", domain.value,
                     response.status_code)
        return response
