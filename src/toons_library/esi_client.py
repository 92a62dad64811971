# src/toons_library/esi_client.py

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .config import EsiConfig
from .error_handler import RemoteApiError
from .queue_stats import QueuedSkill

lib_logger = logging.getLogger("toons_library")

AUTHORIZE_PATH = "/v2/oauth/authorize"
TOKEN_PATH = "/v2/oauth/token"
VERIFY_PATH = "/oauth/verify"
SKILLS_PATH = "/latest/characters/{character_id}/skills/"
SKILLQUEUE_PATH = "/latest/characters/{character_id}/skillqueue/"
DATASOURCE = "tranquility"

_QUEUE_ADAPTER = TypeAdapter(List[QueuedSkill])


@dataclass(frozen=True)
class TokenPair:
    """
    Access/refresh tokens from one token endpoint response.

    Immutable: a refresh produces a new TokenPair, the caller decides what
    to keep.
    """

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_at: float = 0.0

    @classmethod
    def from_response(
        cls, data: Dict[str, Any], previous_refresh_token: Optional[str] = None
    ) -> "TokenPair":
        access_token = data.get("access_token")
        refresh_token = data.get("refresh_token") or previous_refresh_token
        if not access_token or not refresh_token:
            raise ValueError("token response lacks access_token or refresh_token")
        expires_in = data.get("expires_in", 0)
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=time.time() + float(expires_in),
        )


class VerifyResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    character_id: int = Field(alias="CharacterID")
    character_name: str = Field(alias="CharacterName")
    scopes: str = Field(default="", alias="Scopes")
    expires_on: Optional[str] = Field(default=None, alias="ExpiresOn")


class Skill(BaseModel):
    model_config = ConfigDict(extra="ignore")

    skill_id: int
    skillpoints_in_skill: int
    trained_skill_level: int = 0
    active_skill_level: int = 0


class CharacterSkills(BaseModel):
    model_config = ConfigDict(extra="ignore")

    skills: List[Skill]
    total_sp: int = 0
    unallocated_sp: Optional[int] = None


class EsiClient:
    """
    Thin async client for EVE SSO and the two ESI endpoints the tool reads.

    Every authenticated call takes its TokenPair explicitly; the client keeps
    no token state. Use as an async context manager, or pass in an existing
    httpx.AsyncClient (which the caller then owns).
    """

    def __init__(self, config: EsiConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=config.http_timeout(),
            headers={"User-Agent": config.user_agent},
        )

    async def __aenter__(self) -> "EsiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # =========================================================================
    # SSO
    # =========================================================================

    def build_authorize_url(self, state: str) -> str:
        query = urlencode(
            {
                "response_type": "code",
                "redirect_uri": self.config.callback_url,
                "client_id": self.config.client_id,
                "scope": self.config.scope_string,
                "state": state,
            }
        )
        return f"{self.config.sso_base_url}{AUTHORIZE_PATH}?{query}"

    async def exchange_code(self, code: str) -> TokenPair:
        """Trade an authorization code for a token pair."""
        lib_logger.info("Exchanging authorization code for tokens...")
        data = await self._token_request(
            "token", {"grant_type": "authorization_code", "code": code}
        )
        return self._token_pair("token", data)

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Get a fresh access token. The refresh token is kept if none is returned."""
        data = await self._token_request(
            "refresh", {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        return self._token_pair("refresh", data, previous_refresh_token=refresh_token)

    async def verify(self, tokens: TokenPair) -> VerifyResponse:
        """Resolve the character behind an access token."""
        data = await self._request(
            "verify",
            "GET",
            f"{self.config.sso_base_url}{VERIFY_PATH}",
            headers=self._bearer(tokens),
        )
        try:
            return VerifyResponse.model_validate(data)
        except ValidationError as e:
            raise RemoteApiError("verify", f"unexpected response body: {e}") from e

    # =========================================================================
    # ESI
    # =========================================================================

    async def get_skills(self, tokens: TokenPair, character_id: int) -> CharacterSkills:
        data = await self._request(
            "skills",
            "GET",
            self._esi_url(SKILLS_PATH, character_id),
            headers=self._bearer(tokens),
            params={"datasource": DATASOURCE},
        )
        try:
            return CharacterSkills.model_validate(data)
        except ValidationError as e:
            raise RemoteApiError("skills", f"unexpected response body: {e}") from e

    async def get_skill_queue(
        self, tokens: TokenPair, character_id: int
    ) -> List[QueuedSkill]:
        data = await self._request(
            "queue",
            "GET",
            self._esi_url(SKILLQUEUE_PATH, character_id),
            headers=self._bearer(tokens),
            params={"datasource": DATASOURCE},
        )
        try:
            return _QUEUE_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise RemoteApiError("queue", f"unexpected response body: {e}") from e

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _esi_url(self, path: str, character_id: int) -> str:
        return self.config.esi_base_url + path.format(character_id=character_id)

    @staticmethod
    def _bearer(tokens: TokenPair) -> Dict[str, str]:
        return {"Authorization": f"Bearer {tokens.access_token}"}

    def _token_pair(
        self,
        stage: str,
        data: Any,
        previous_refresh_token: Optional[str] = None,
    ) -> TokenPair:
        if not isinstance(data, dict):
            raise RemoteApiError(stage, "token response is not a JSON object")
        try:
            return TokenPair.from_response(data, previous_refresh_token)
        except (TypeError, ValueError) as e:
            raise RemoteApiError(stage, str(e)) from e

    async def _token_request(self, stage: str, form: Dict[str, str]) -> Any:
        return await self._request(
            stage,
            "POST",
            f"{self.config.sso_base_url}{TOKEN_PATH}",
            data=form,
            auth=(self.config.client_id, self.config.client_secret),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    async def _request(self, stage: str, method: str, url: str, **kwargs) -> Any:
        """
        Perform one request and decode its JSON body.

        Raises:
            RemoteApiError: on transport errors, non-2xx statuses or non-JSON bodies
        """
        lib_logger.debug(f"{stage}: {method} {url}")
        try:
            response = await self._http.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteApiError(
                stage, e.response.text, status_code=e.response.status_code
            ) from e
        except httpx.RequestError as e:
            raise RemoteApiError(stage, f"{type(e).__name__}: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise RemoteApiError(stage, f"response is not JSON: {e}") from e
