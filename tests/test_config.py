import unittest

import voice_notes.config as config_mod


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        c = config_mod.VoiceNotesConfig()
        self.assertEqual(c.app_id, "default-app-id")
        self.assertEqual(c.document_slot, "initial-message")
        self.assertEqual(c.voice_name, "Puck")
        self.assertEqual(c.tts_model, "gemini-2.5-flash-preview-tts")
        self.assertIsNone(c.gemini_api_key)
        self.assertEqual(c.firebase_config, {})

    def test_document_path(self):
        c = config_mod.VoiceNotesConfig(app_id="my-app")
        self.assertEqual(
            c.document_path("u1"),
            "artifacts/my-app/users/u1/data/initial-message",
        )

    def test_endpoint_trailing_slash_is_removed(self):
        c = config_mod.VoiceNotesConfig(tts_endpoint="https://example.com/v1beta/")
        self.assertEqual(c.tts_endpoint, "https://example.com/v1beta")

    def test_invalid_values_raise(self):
        with self.assertRaises(ValueError):
            config_mod.VoiceNotesConfig(app_id="")
        with self.assertRaises(ValueError):
            config_mod.VoiceNotesConfig(app_id="a/b")
        with self.assertRaises(ValueError):
            config_mod.VoiceNotesConfig(document_slot="")
        with self.assertRaises(ValueError):
            config_mod.VoiceNotesConfig(request_timeout=0)
        with self.assertRaises(ValueError):
            config_mod.VoiceNotesConfig(tts_model="")

    def test_firebase_config_accessors(self):
        c = config_mod.VoiceNotesConfig(firebase_config={"projectId": "proj", "apiKey": "key"})
        self.assertEqual(c.project_id, "proj")
        self.assertEqual(c.firebase_api_key, "key")


class TestConfigFromEnv(unittest.TestCase):
    def test_empty_environment_gives_defaults(self):
        self.assertEqual(config_mod.VoiceNotesConfig.from_env({}), config_mod.VoiceNotesConfig())

    def test_reads_variables(self):
        c = config_mod.VoiceNotesConfig.from_env({
            "VOICE_NOTES_APP_ID": "app",
            "VOICE_NOTES_DOCUMENT_SLOT": "slot",
            "VOICE_NOTES_STORE": "memory",
            "FIREBASE_CONFIG": '{"projectId": "proj", "apiKey": "key"}',
            "FIREBASE_INITIAL_AUTH_TOKEN": "token",
            "GEMINI_API_KEY": "gemini",
            "VOICE_NOTES_VOICE": "Kore",
            "VOICE_NOTES_REQUEST_TIMEOUT": "12.5",
        })

        self.assertEqual(c.app_id, "app")
        self.assertEqual(c.document_slot, "slot")
        self.assertEqual(c.store_backend, "memory")
        self.assertEqual(c.project_id, "proj")
        self.assertEqual(c.initial_auth_token, "token")
        self.assertEqual(c.gemini_api_key, "gemini")
        self.assertEqual(c.voice_name, "Kore")
        self.assertEqual(c.request_timeout, 12.5)

    def test_google_api_key_fallback(self):
        c = config_mod.VoiceNotesConfig.from_env({"GOOGLE_API_KEY": "google"})
        self.assertEqual(c.gemini_api_key, "google")

        c = config_mod.VoiceNotesConfig.from_env({"GOOGLE_API_KEY": "google", "GEMINI_API_KEY": "gemini"})
        self.assertEqual(c.gemini_api_key, "gemini")

    def test_invalid_firebase_config_raises(self):
        with self.assertRaises(ValueError):
            config_mod.VoiceNotesConfig.from_env({"FIREBASE_CONFIG": "{not json"})
        with self.assertRaises(ValueError):
            config_mod.VoiceNotesConfig.from_env({"FIREBASE_CONFIG": "[1, 2]"})


if __name__ == '__main__':
    unittest.main()
