"""
Configuration classes for voice_notes components.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional


@dataclass
class VoiceNotesConfig:
    """
    Configuration shared by the sync channel, the synthesis pipeline and the
    identity provider.

    Build it once at process start and pass the same instance to every
    component. Nothing in the library reads the environment on its own; use
    `VoiceNotesConfig.from_env()` for that.

    Attributes:
        app_id: Application namespace. Documents live under
            `artifacts/{app_id}/users/{identity}/data/{document_slot}`.
            Default: 'default-app-id'

        document_slot: Name of the single document kept per user.
            Default: 'initial-message'

        store_backend: Document store factory name.
            Supported values: 'firestore', 'memory'
            Default: 'firestore'

        firebase_config: Firebase web configuration (`projectId`, `apiKey`, ...).
            `projectId` selects the Firestore project and `apiKey` is used for
            Firebase Authentication.
            Default: {}

        initial_auth_token: Custom token exchanged for an identity at startup.
            If None, an anonymous session is created.
            Default: None

        gemini_api_key: Credential for the speech synthesis endpoint.
            Default: None (synthesis fails with NotReadyError)

        tts_model: Speech synthesis model identifier.
            Default: 'gemini-2.5-flash-preview-tts'

        tts_endpoint: Base URL of the speech synthesis API.
            Default: 'https://generativelanguage.googleapis.com/v1beta'

        voice_name: Default prebuilt voice.
            Default: 'Puck'

        request_timeout: Seconds to wait for the synthesis service.
            Default: 60.0

        empty_message_text: Text shown when the user has no saved document.
            Default: 'No saved message.'
    """

    app_id: str = "default-app-id"
    document_slot: str = "initial-message"
    store_backend: str = "firestore"
    firebase_config: Dict[str, str] = field(default_factory=dict)
    initial_auth_token: Optional[str] = None
    gemini_api_key: Optional[str] = None
    tts_model: str = "gemini-2.5-flash-preview-tts"
    tts_endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    voice_name: str = "Puck"
    request_timeout: float = 60.0
    empty_message_text: str = "No saved message."

    def __post_init__(self):
        """Validate configuration parameters after initialization."""
        if not self.app_id or "/" in self.app_id:
            raise ValueError(f"app_id must be a non-empty path segment, got {self.app_id!r}")

        if not self.document_slot or "/" in self.document_slot:
            raise ValueError(
                f"document_slot must be a non-empty path segment, got {self.document_slot!r}"
            )

        if self.request_timeout <= 0:
            raise ValueError(
                f"request_timeout must be positive, got {self.request_timeout}"
            )

        if not self.tts_model:
            raise ValueError("tts_model must not be empty")

        self.tts_endpoint = self.tts_endpoint.rstrip("/")

    @property
    def namespace(self) -> str:
        return f"artifacts/{self.app_id}"

    @property
    def project_id(self) -> Optional[str]:
        return self.firebase_config.get("projectId")

    @property
    def firebase_api_key(self) -> Optional[str]:
        return self.firebase_config.get("apiKey")

    def document_path(self, identity: str) -> str:
        """Full store path of the document owned by `identity`."""
        return f"{self.namespace}/users/{identity}/data/{self.document_slot}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VoiceNotesConfig":
        """Build a configuration from environment variables.

        Unset variables keep their defaults. `FIREBASE_CONFIG` must hold a JSON
        object; anything else raises ValueError.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        simple_fields = {
            "VOICE_NOTES_APP_ID": "app_id",
            "VOICE_NOTES_DOCUMENT_SLOT": "document_slot",
            "VOICE_NOTES_STORE": "store_backend",
            "FIREBASE_INITIAL_AUTH_TOKEN": "initial_auth_token",
            "VOICE_NOTES_TTS_MODEL": "tts_model",
            "VOICE_NOTES_VOICE": "voice_name",
        }
        for var, name in simple_fields.items():
            if env.get(var):
                kwargs[name] = env[var]

        api_key = env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY")
        if api_key:
            kwargs["gemini_api_key"] = api_key

        if env.get("VOICE_NOTES_REQUEST_TIMEOUT"):
            kwargs["request_timeout"] = float(env["VOICE_NOTES_REQUEST_TIMEOUT"])

        raw_firebase_config = env.get("FIREBASE_CONFIG")
        if raw_firebase_config:
            try:
                firebase_config = json.loads(raw_firebase_config)
            except json.JSONDecodeError as e:
                raise ValueError(f"FIREBASE_CONFIG is not valid JSON: {e}") from e
            if not isinstance(firebase_config, dict):
                raise ValueError("FIREBASE_CONFIG must be a JSON object")
            kwargs["firebase_config"] = firebase_config

        return cls(**kwargs)
