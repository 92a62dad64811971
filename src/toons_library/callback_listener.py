# src/toons_library/callback_listener.py
"""
Single-shot listener for the SSO redirect.

After the user consents in the browser, the SSO redirects to
http://localhost:<port>/esi/callback?code=...&state=... . This module accepts
exactly one connection on that port, reads the request head line by line,
pulls code/state out of the request line and answers with a fixed page.
It is deliberately not an HTTP server: the redirect is the only request the
tool ever receives.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import parse_qs

from .error_handler import BindError, CallbackParseError, ListenerError

lib_logger = logging.getLogger("toons_library")

DEFAULT_CALLBACK_PATH = "/esi/callback"

CALLBACK_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/html; charset=UTF-8\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"<html><body>OK</body></html>\r\n"
)


@dataclass(frozen=True)
class CallbackResult:
    code: str
    state: str


def parse_callback_query(query: str) -> CallbackResult:
    """
    Decode `code=...&state=...`. Unrelated fields and empty segments are ignored.

    Raises:
        CallbackParseError: if either value is missing or empty
    """
    params = parse_qs(query, keep_blank_values=True)

    missing = [key for key in ("code", "state") if not params.get(key, [""])[0]]
    if missing:
        raise CallbackParseError(
            f"Callback query is missing {', '.join(missing)}: '{query}'"
        )
    return CallbackResult(code=params["code"][0], state=params["state"][0])


def parse_request_line(
    line: str, callback_path: str = DEFAULT_CALLBACK_PATH
) -> Optional[CallbackResult]:
    """
    Return the callback parameters if `line` is `GET <callback_path>?<query> ...`,
    None for any other line.
    """
    prefix = f"GET {callback_path}?"
    if not line.startswith(prefix):
        return None
    remainder = line[len(prefix) :].split(None, 1)
    query = remainder[0] if remainder else ""
    return parse_callback_query(query)


class CallbackListener:
    """
    Accepts one connection on host:port and resolves to its CallbackResult.

    Usage:
        async with CallbackListener("127.0.0.1", 5000) as listener:
            ...  # show the authorization URL
            result = await listener.wait()

    wait() returns None when the single accepted request did not carry a
    callback line; callers must treat that as a failed attempt.
    """

    def __init__(
        self, host: str, port: int, callback_path: str = DEFAULT_CALLBACK_PATH
    ):
        self.host = host
        self.requested_port = port
        self.callback_path = callback_path
        self._server: Optional[asyncio.AbstractServer] = None
        self._result: Optional[asyncio.Future] = None
        self._claimed = False

    @property
    def port(self) -> int:
        """The bound port (differs from the requested one when that was 0)."""
        if self._server is None or not self._server.sockets:
            return self.requested_port
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """
        Bind the listening socket.

        Raises:
            BindError: if the port is unavailable
        """
        self._result = asyncio.get_running_loop().create_future()
        self._claimed = False
        try:
            self._server = await asyncio.start_server(
                self._handle_connection, self.host, self.requested_port
            )
        except OSError as e:
            raise BindError(self.host, self.requested_port, str(e)) from e
        lib_logger.debug(
            f"Waiting for OAuth callback on {self.host}:{self.port}{self.callback_path}"
        )

    async def wait(self, timeout: Optional[float] = None) -> Optional[CallbackResult]:
        """
        Block until the first connection has been answered, then stop listening.

        Raises:
            CallbackParseError: if the callback line could not be decoded
            ListenerError: if `timeout` elapses first
        """
        if self._result is None:
            raise ListenerError("Callback listener was not started")
        try:
            if timeout is None:
                return await self._result
            return await asyncio.wait_for(self._result, timeout=timeout)
        except asyncio.TimeoutError:
            raise ListenerError(f"No OAuth callback received within {timeout}s")
        finally:
            await self.close()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def __aenter__(self) -> "CallbackListener":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        if self._claimed:
            # Only the first accepted connection counts.
            writer.close()
            return
        self._claimed = True

        result: Optional[CallbackResult] = None
        error: Optional[CallbackParseError] = None
        try:
            while True:
                try:
                    raw = await reader.readline()
                except ConnectionError as e:
                    lib_logger.error(f"Connection lost while reading callback: {e}")
                    break
                except ValueError as e:
                    lib_logger.error(f"Encountered IO error: {e}")
                    continue
                if not raw:
                    break
                try:
                    line = raw.decode("utf-8")
                except UnicodeDecodeError as e:
                    lib_logger.error(f"Encountered IO error: {e}")
                    continue

                if error is None and result is None:
                    try:
                        result = parse_request_line(line, self.callback_path)
                    except CallbackParseError as e:
                        error = e
                if line == "\r\n":
                    break

            writer.write(CALLBACK_RESPONSE)
            await writer.drain()
        except ConnectionError as e:
            lib_logger.error(f"Failed sending response: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError as e:
                lib_logger.debug(f"Callback connection closed uncleanly: {e}")
            if self._result is not None and not self._result.done():
                if error is not None:
                    self._result.set_exception(error)
                else:
                    self._result.set_result(result)


async def await_callback(
    host: str,
    port: int,
    callback_path: str = DEFAULT_CALLBACK_PATH,
    timeout: Optional[float] = None,
    on_ready: Optional[Callable[[], None]] = None,
) -> Optional[CallbackResult]:
    """
    Bind, wait for one redirect, stop listening.

    `on_ready` runs once the port is bound, which is the earliest moment the
    authorization URL may be handed to a browser.
    """
    async with CallbackListener(host, port, callback_path) as listener:
        if on_ready is not None:
            on_ready()
        return await listener.wait(timeout)
