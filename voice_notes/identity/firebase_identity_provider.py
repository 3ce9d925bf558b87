import logging
import threading
from typing import Any, Dict, Optional

import requests

from ..config import VoiceNotesConfig
from ..errors import AuthError
from .identity_provider import IdentityProvider

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


class FirebaseIdentityProvider(IdentityProvider):
    """
    Firebase Authentication through its REST API.

    With `config.initial_auth_token` the custom token is exchanged for a
    session first; if that fails, or without a token, an anonymous account is
    created. Sign-in runs on a background thread started by `start()`.
    """

    def __init__(
        self,
        config: Optional[VoiceNotesConfig] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        super().__init__()
        self._config = config if config else VoiceNotesConfig()
        self._session = session or requests.Session()
        self._timeout = timeout
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread is not None:
            return

        self._thread = threading.Thread(
            target=self._sign_in_thread_function,
            daemon=True,
            name='FirebaseSignInThread',
        )
        self._thread.start()

    def _sign_in_thread_function(self):
        try:
            self.sign_in()
        except AuthError as e:
            logger.error(f"Unable to sign in: {e}")
            self._set_error(e)
        except Exception as e:
            logger.exception("Unexpected error while signing in")
            self._set_error(e)
        finally:
            # wait_for_identity() must never block forever
            self._done.set()

    def sign_in(self) -> str:
        """Sign in synchronously and return the identity."""
        if not self._config.firebase_api_key:
            raise AuthError("Firebase apiKey is missing from the Firebase configuration")

        identity = None
        token = self._config.initial_auth_token

        if token:
            try:
                identity = self.sign_in_with_custom_token(token)
            except AuthError as e:
                logger.error(f"Error signing in with custom token: {e}")

        if identity is None:
            identity = self.sign_in_anonymously()

        self._set_identity(identity)
        return identity

    def sign_in_with_custom_token(self, token: str) -> str:
        logger.debug("Signing in with custom token")

        response = self._call("signInWithCustomToken", {"token": token, "returnSecureToken": True})
        id_token = self._require(response, "idToken")

        lookup = self._call("lookup", {"idToken": id_token})
        users = lookup.get("users") or []
        if not users or not users[0].get("localId"):
            raise AuthError("Account lookup returned no user")

        return users[0]["localId"]

    def sign_in_anonymously(self) -> str:
        logger.debug("Signing in anonymously")

        response = self._call("signUp", {"returnSecureToken": True})
        return self._require(response, "localId")

    @staticmethod
    def _require(response: Dict[str, Any], key: str) -> str:
        value = response.get(key)
        if not isinstance(value, str) or not value:
            raise AuthError(f"Sign-in response has no '{key}'")
        return value

    def _call(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._session.post(
                f"{IDENTITY_TOOLKIT_URL}/accounts:{method}",
                params={"key": self._config.firebase_api_key},
                json=body,
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthError(f"accounts:{method} request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code != 200:
            error = payload.get("error") if isinstance(payload, dict) else None
            message = error.get("message") if isinstance(error, dict) else response.text[:200]
            raise AuthError(f"accounts:{method} failed with HTTP {response.status_code}: {message}")

        if not isinstance(payload, dict):
            raise AuthError(f"accounts:{method} returned an unexpected body")

        return payload
