"""Relay client: fetch one target URL through one public CORS relay."""

import asyncio
import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from .exceptions import RateLimitedError, RelayEnvelopeError, RelayError, RelayTimeoutError
from .logging_config import create_execution_logger

HTTP_TOO_MANY_REQUESTS = 429

# encoding="..." inside a leading XML declaration
XML_ENCODING_PATTERN = re.compile(r"""(^\s*<\?xml[^>]*?encoding=["'])[^"']+(["'])""")


@dataclass(frozen=True)
class Relay:
    """A relay endpoint and the response envelope it wraps documents in."""

    name: str
    build_url: Callable[[str], str]
    parse_envelope: Callable[[bytes], bytes]


def raw_envelope(body: bytes) -> bytes:
    """Relay returns the target document byte for byte."""
    return body


def json_contents_envelope(body: bytes) -> bytes:
    """Relay returns ``{"contents": "<document>"}``.

    The contents arrive already decoded, so the document is re-encoded as
    UTF-8 and its XML declaration updated to say so.
    """
    try:
        data = json.loads(body)
    except ValueError as e:
        raise RelayEnvelopeError(f"Relay body is not JSON: {e}") from e

    contents = data.get("contents") if isinstance(data, dict) else None
    if not isinstance(contents, str):
        raise RelayEnvelopeError("Relay JSON envelope has no 'contents' string")
    return XML_ENCODING_PATTERN.sub(r"\1utf-8\2", contents, count=1).encode("utf-8")


def _encode(url: str) -> str:
    return quote(url, safe="")


CORSPROXY = Relay(
    name="corsproxy.io",
    build_url=lambda url: f"https://corsproxy.io/?{_encode(url)}",
    parse_envelope=raw_envelope,
)

ALLORIGINS = Relay(
    name="allorigins",
    build_url=lambda url: f"https://api.allorigins.win/get?url={_encode(url)}",
    parse_envelope=json_contents_envelope,
)

# Fastest relay first for generic feeds
DEFAULT_RELAYS = (CORSPROXY, ALLORIGINS)

# arXiv answers more reliably through allorigins
ARXIV_RELAYS = (ALLORIGINS, CORSPROXY)


class RelayClient:
    """Issues single GET requests through relays with an abort timeout."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 4.0,
        execution_id: str | None = None,
    ):
        """Initialize RelayClient.

        Args:
            client: Shared HTTP client
            timeout: Default per-attempt abort timeout in seconds
            execution_id: Execution ID for logging context
        """
        self.client = client
        self.timeout = timeout
        self.logger = create_execution_logger("relay_client", execution_id)

    async def fetch(self, relay: Relay, target_url: str, timeout: float | None = None) -> bytes:
        """Fetch ``target_url`` through ``relay`` and return the raw body bytes.

        The body is not unwrapped; callers apply ``relay.parse_envelope``.

        Raises:
            RateLimitedError: If the relay answered HTTP 429
            RelayTimeoutError: If the attempt exceeded the timeout
            RelayError: On any other transport or HTTP failure
        """
        request_url = relay.build_url(target_url)
        limit = self.timeout if timeout is None else timeout

        self.logger.debug(
            "Requesting through relay",
            relay=relay.name,
            feed_url=target_url,
            timeout=limit,
        )

        try:
            response = await asyncio.wait_for(
                self.client.get(
                    request_url,
                    headers={"Accept": "application/json, application/xml, text/xml, */*"},
                ),
                timeout=limit,
            )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise RelayTimeoutError(
                f"{relay.name} timed out after {limit}s", relay=relay.name
            ) from e
        except httpx.HTTPError as e:
            raise RelayError(f"{relay.name} request failed: {e}", relay=relay.name) from e

        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            raise RateLimitedError(
                f"{relay.name} rate limited (429)",
                relay=relay.name,
                status_code=response.status_code,
            )

        if response.is_error:
            raise RelayError(
                f"{relay.name} HTTP error {response.status_code}",
                relay=relay.name,
                status_code=response.status_code,
            )

        return response.content
