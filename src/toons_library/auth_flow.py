# src/toons_library/auth_flow.py

import secrets
import logging
import webbrowser
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.markup import escape as rich_escape

from .callback_listener import await_callback
from .config import EsiConfig
from .credential_store import CredentialRecord, CredentialStore
from .error_handler import CallbackParseError, ListenerError
from .esi_client import EsiClient
from .utils.headless_detection import is_headless_environment

lib_logger = logging.getLogger("toons_library")


class AuthExchangeFlow:
    """
    Interactive browser login for one character at a time.

    Each attempt binds the callback port, shows the authorization URL, waits
    for the redirect, exchanges the code, verifies who logged in and only then
    writes the record. Any failure propagates: the operator reruns the command.
    """

    def __init__(
        self,
        config: EsiConfig,
        client: EsiClient,
        store: CredentialStore,
        console: Optional[Console] = None,
        open_browser: Optional[Callable[[str], bool]] = None,
        callback_timeout: Optional[float] = None,
    ):
        self.config = config
        self.client = client
        self.store = store
        self.console = console or Console()
        self._open_browser = open_browser
        self.callback_timeout = callback_timeout

    def _present_url(self, url: str) -> None:
        headless = is_headless_environment()
        if headless:
            text = Text.from_markup(
                "Running in headless environment (no GUI detected).\n"
                "Open the URL below in a browser that can reach this machine's "
                f"port {self.config.callback_port}."
            )
        else:
            text = Text.from_markup(
                "1. Your browser will now open to log in to EVE Online.\n"
                "2. If it doesn't open automatically, please open the URL below manually."
            )
        self.console.print(
            Panel(text, title="Authenticating character", style="bold blue")
        )
        self.console.print(f"[bold]URL:[/bold] [link={url}]{rich_escape(url)}[/link]\n")

        if headless:
            return
        opener = self._open_browser or webbrowser.open
        try:
            opener(url)
        except webbrowser.Error as e:
            lib_logger.warning(
                f"Failed to open browser automatically: {e}. Please open the URL manually."
            )

    async def authenticate_once(self) -> CredentialRecord:
        """
        Run one login and persist the resulting record.

        Raises:
            BindError: callback port unavailable
            CallbackParseError: malformed redirect or state mismatch
            ListenerError: the redirect carried no callback
            RemoteApiError: token exchange or verification failed
            OSError: the credential file could not be written
        """
        state = secrets.token_urlsafe(16)
        url = self.client.build_authorize_url(state)

        with self.console.status(
            "[bold green]Waiting for you to complete authentication in the browser...[/bold green]",
            spinner="dots",
        ):
            callback = await await_callback(
                self.config.callback_host,
                self.config.callback_port,
                self.config.callback_path,
                timeout=self.callback_timeout,
                on_ready=lambda: self._present_url(url),
            )

        if callback is None:
            raise ListenerError("Auth callback failed: no callback request received")
        if not secrets.compare_digest(callback.state, state):
            raise CallbackParseError("Auth callback state does not match this login attempt")

        tokens = await self.client.exchange_code(callback.code)
        verify = await self.client.verify(tokens)
        lib_logger.debug(f"Verified character: {verify!r}")

        record = CredentialRecord(
            name=verify.character_name,
            character_id=verify.character_id,
            refresh_token=tokens.refresh_token,
            scopes=verify.scopes,
        )
        is_update = self.store.upsert(record)
        self.store.save()

        action = "Updated" if is_update else "Added"
        lib_logger.info(f"{action} credentials for '{record.name}' ({record.character_id}).")
        self.console.print(
            f"[bold green]{action}[/bold green] {rich_escape(record.name)} :: {record.character_id}"
        )
        return record

    async def run_auth_loop(self) -> None:
        """Authenticate characters one after another until interrupted."""
        while True:
            await self.authenticate_once()
