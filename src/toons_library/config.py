# src/toons_library/config.py
"""
Runtime configuration for the EVE SSO / ESI client.

Values are read from environment variables (a `.env` file in the data root is
loaded by the CLI before this runs):
    ESI_CLIENT_ID        - Application client id (required)
    ESI_SECRET           - Application secret (required, ESI_CLIENT_SECRET also accepted)
    ESI_CALLBACK_URL     - Redirect URL registered with the application
                           (default: http://localhost:5000/esi/callback)
    ESI_SCOPES           - Space separated scopes
    ESI_USER_AGENT       - User-Agent sent with every request (default: eve-toons-agent)
    ESI_REQUEST_TIMEOUT  - Per-request timeout in seconds (default: 30)
    TOONS_FILE           - Credential file (default: toons.json in the data root)
"""

import sys
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit

import httpx

from .error_handler import ConfigValidationError

lib_logger = logging.getLogger("toons_library")

DEFAULT_CALLBACK_URL = "http://localhost:5000/esi/callback"
DEFAULT_SCOPES = (
    "esi-characterstats.read.v1",
    "esi-skills.read_skills.v1",
    "esi-skills.read_skillqueue.v1",
)
DEFAULT_USER_AGENT = "eve-toons-agent"
DEFAULT_TOONS_FILE = "toons.json"
DEFAULT_REQUEST_TIMEOUT = 30.0

SSO_BASE_URL = "https://login.eveonline.com"
ESI_BASE_URL = "https://esi.evetech.net"

LOGS_DIR_NAME = "logs"

# The listener never binds a public interface, whatever host the URL names.
CALLBACK_BIND_HOST = "127.0.0.1"


@dataclass(frozen=True)
class EsiConfig:
    client_id: str
    client_secret: str
    callback_url: str = DEFAULT_CALLBACK_URL
    scopes: Tuple[str, ...] = DEFAULT_SCOPES
    user_agent: str = DEFAULT_USER_AGENT
    toons_file: Path = field(default_factory=lambda: data_root() / DEFAULT_TOONS_FILE)
    sso_base_url: str = SSO_BASE_URL
    esi_base_url: str = ESI_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self):
        problems = self.validate()
        if problems:
            raise ConfigValidationError(problems)

    def validate(self) -> List[str]:
        """Return a list of human readable problems, empty if the config is usable."""
        problems = []
        if not self.client_id:
            problems.append("ESI_CLIENT_ID must be set")
        if not self.client_secret:
            problems.append("ESI_SECRET must be set")
        if not self.scopes:
            problems.append("ESI_SCOPES must name at least one scope")

        parts = urlsplit(self.callback_url or "")
        if parts.scheme != "http" or not parts.hostname:
            problems.append(
                f"ESI_CALLBACK_URL must be an http:// URL, got '{self.callback_url}'"
            )
        else:
            try:
                parts.port
            except ValueError:
                problems.append(
                    f"ESI_CALLBACK_URL has an invalid port: '{self.callback_url}'"
                )
            if not parts.path or parts.path == "/":
                problems.append("ESI_CALLBACK_URL must include a callback path")

        if self.request_timeout <= 0:
            problems.append("ESI_REQUEST_TIMEOUT must be positive")
        return problems

    @property
    def callback_host(self) -> str:
        return CALLBACK_BIND_HOST

    @property
    def callback_port(self) -> int:
        port = urlsplit(self.callback_url).port
        return 80 if port is None else port

    @property
    def callback_path(self) -> str:
        return urlsplit(self.callback_url).path

    @property
    def scope_string(self) -> str:
        return " ".join(self.scopes)

    def http_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.request_timeout)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str],
        root: Optional[Union[Path, str]] = None,
    ) -> "EsiConfig":
        """
        Build a config from an environment mapping (typically os.environ).

        Raises:
            ConfigValidationError: listing every missing or invalid field at once
        """
        scopes_value = env.get("ESI_SCOPES", "")
        scopes = tuple(scopes_value.split()) if scopes_value.strip() else DEFAULT_SCOPES

        return cls(
            client_id=env.get("ESI_CLIENT_ID", "").strip(),
            client_secret=(
                env.get("ESI_SECRET") or env.get("ESI_CLIENT_SECRET") or ""
            ).strip(),
            callback_url=env.get("ESI_CALLBACK_URL") or DEFAULT_CALLBACK_URL,
            scopes=scopes,
            user_agent=env.get("ESI_USER_AGENT") or DEFAULT_USER_AGENT,
            toons_file=get_toons_file(env, root),
            request_timeout=_get_env_float(
                env, "ESI_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT
            ),
        )


def _get_env_float(env: Mapping[str, str], key: str, default: float) -> float:
    """Get a float value from the environment mapping, or return default."""
    value = env.get(key)
    if value is not None and value != "":
        try:
            return float(value)
        except ValueError:
            lib_logger.warning(
                f"Invalid value for {key}: {value}. Using default: {default}"
            )
    return default


def get_toons_file(
    env: Mapping[str, str], root: Optional[Union[Path, str]] = None
) -> Path:
    """Resolve the credential file path without requiring API credentials."""
    toons_file = env.get("TOONS_FILE")
    if toons_file:
        return Path(toons_file).expanduser()
    return _base(root) / DEFAULT_TOONS_FILE


def data_root() -> Path:
    """
    Where toons.json, .env and logs/ live by default: next to the executable
    for a frozen build, otherwise the directory the command runs from.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    return Path.cwd()


def _base(root: Optional[Union[Path, str]]) -> Path:
    return Path(root) if root else data_root()


def logs_dir(root: Optional[Union[Path, str]] = None) -> Path:
    """The log directory under `root`, created on first use."""
    path = _base(root) / LOGS_DIR_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path
