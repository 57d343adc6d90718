"""Firebase Authentication over the Identity Toolkit REST API.

Only the calls the planner needs:
  accounts:signUp                -> anonymous account (returns localId + idToken)
  accounts:signInWithCustomToken -> idToken for a host-issued custom token
  accounts:lookup                -> resolve the uid (localId) behind an idToken
"""
import logging
from typing import Any, Dict, Optional

import httpx

from trip.utilities.config import HTTP_TIMEOUT
from trip.utilities.errors import IdentityFailure

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


def error_message(response: httpx.Response) -> str:
    """Extract {"error": {"status": ..., "message": ...}} from a Google API error body."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        status = err.get("status")
        prefix = f"{status}: " if isinstance(status, str) and status else ""
        return f"{prefix}{err['message']} (HTTP {response.status_code})"
    return f"HTTP {response.status_code}"


class FirebaseAuthProvider:
    def __init__(self, api_key: Optional[str], client: Optional[httpx.AsyncClient] = None,
                 base_url: str = IDENTITY_TOOLKIT_URL, timeout: float = HTTP_TIMEOUT):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._user_id: Optional[str] = None
        self._id_token: Optional[str] = None

    def current_user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def id_token(self) -> Optional[str]:
        """Bearer token of the signed-in user, for authorizing store requests."""
        return self._id_token

    async def sign_in_anonymously(self) -> str:
        data = await self._post("accounts:signUp", {"returnSecureToken": True})
        local_id = data.get("localId")
        if not local_id:
            raise IdentityFailure("Anonymous sign-in returned no user id")
        return self._accept(local_id, data.get("idToken"))

    async def sign_in_with_custom_token(self, token: str) -> str:
        data = await self._post("accounts:signInWithCustomToken", {"token": token, "returnSecureToken": True})
        id_token = data.get("idToken")
        if not id_token:
            raise IdentityFailure("Custom token sign-in returned no ID token")
        lookup = await self._post("accounts:lookup", {"idToken": id_token})
        users = lookup.get("users") or []
        local_id = users[0].get("localId") if users and isinstance(users[0], dict) else None
        if not local_id:
            raise IdentityFailure("Could not resolve the user id for the custom token")
        return self._accept(local_id, id_token)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _accept(self, local_id: str, id_token: Optional[str]) -> str:
        self._user_id = local_id
        self._id_token = id_token
        logger.info(f"Firebase user signed in: {local_id}")
        return local_id

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _post(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise IdentityFailure("Firebase apiKey is not configured")
        url = f"{self.base_url}/{method}"
        try:
            response = await self._http().post(url, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as e:
            raise IdentityFailure(f"Identity provider unreachable: {e}", cause=e) from e
        if response.status_code != 200:
            raise IdentityFailure(error_message(response))
        try:
            data = response.json()
        except ValueError as e:
            raise IdentityFailure(f"Invalid response from {method}", cause=e) from e
        return data if isinstance(data, dict) else {}
