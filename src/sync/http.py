# http client used for push/pull against the table API
from typing import Generator, Optional

import httpx

from utils.config import Settings, settings as default_settings
from utils.logger import get_logger
from utils.state import UserNameStore

_logger = get_logger(__name__)


class UserNameAuth(httpx.Auth):
    """
    Sends the current user name as a bearer token.
    Matches the server's placeholder authentication, not for production.
    """

    def __init__(self, store: UserNameStore):
        self.store = store

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.store.user_name}"
        yield request


def _format_headers(prefix: str, headers: httpx.Headers) -> list[str]:
    return [f"[HTTP] {prefix} {key}: {value}" for key, value in headers.items()]


async def log_request(request: httpx.Request) -> None:
    lines = [f"[HTTP] >>> {request.method} {request.url}"]
    lines += _format_headers(">>>", request.headers)
    if request.content:
        lines.append(f"[HTTP] >>> {request.content.decode('utf-8', 'replace')}")
    _logger.debug("\n".join(lines))


async def log_response(response: httpx.Response) -> None:
    await response.aread()
    lines = [f"[HTTP] <<< {response.status_code} {response.reason_phrase}"]
    lines += _format_headers("<<<", response.headers)
    if response.content:
        lines.append(f"[HTTP] <<< {response.text}")
    _logger.debug("\n".join(lines))


def create_client(
    store: UserNameStore,
    config: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """A fresh client per sync run; callers use it as an async context manager."""
    config = config or default_settings
    return httpx.AsyncClient(
        base_url=config.server_url,
        auth=UserNameAuth(store),
        verify=config.verify_tls,
        timeout=config.timeout_seconds,
        transport=transport,
        event_hooks={"request": [log_request], "response": [log_response]},
    )
