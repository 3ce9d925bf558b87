import queue
import unittest
from unittest.mock import MagicMock, patch

from tests.helpers.fakes import FakeResponse, FakeSession, gemini_audio_body, generate_sine_pcm
from voice_notes import (
    AudioFailedEvent,
    AudioReadyEvent,
    IdentityReadyEvent,
    MessageSavedEvent,
    MessageSaveFailedEvent,
    MessageUpdatedEvent,
    VoiceNotepad,
    VoiceNotesConfig,
)
from voice_notes.document_sync import InMemoryDocumentStore
from voice_notes.errors import InvalidInputError, NotReadyError, TransportError
from voice_notes.identity import IdentityProvider, StaticIdentityProvider
from voice_notes.speech_synthesis import SpeechSynthesisPipeline


class ManualIdentityProvider(IdentityProvider):
    """Identity arrives only when the test calls deliver()."""

    def start(self):
        pass

    def deliver(self, identity):
        self._set_identity(identity)


class TestVoiceNotepad(unittest.TestCase):
    def setUp(self):
        self.events = queue.Queue()
        self.config = VoiceNotesConfig(gemini_api_key="test-key", store_backend="memory")
        self.store = InMemoryDocumentStore()
        self.pcm = generate_sine_pcm(duration=0.05)
        self.session_factory = MagicMock(
            side_effect=lambda: FakeSession(FakeResponse(200, gemini_audio_body(self.pcm)))
        )
        self.pipeline = SpeechSynthesisPipeline(self.config, session_factory=self.session_factory)
        self.identity_provider = StaticIdentityProvider("u1")

        self.notepad = VoiceNotepad(
            event_callback=self.events.put,
            config=self.config,
            identity_provider=self.identity_provider,
            store=self.store,
            pipeline=self.pipeline,
        )

    def tearDown(self):
        self.notepad.terminate()
        self.store.terminate()

    def wait_for(self, event_type, timeout=5):
        while True:
            event = self.events.get(timeout=timeout)
            if isinstance(event, event_type):
                return event

    def test_start_subscribes_once_identity_is_ready(self):
        self.notepad.start()

        self.assertEqual(self.wait_for(IdentityReadyEvent)["identity"], "u1")

        event = self.wait_for(MessageUpdatedEvent)
        self.assertEqual(event["content"], "No saved message.")
        self.assertFalse(event["exists"])
        self.assertEqual(self.notepad.message, "No saved message.")

    def test_save_message(self):
        self.notepad.start()
        self.wait_for(MessageUpdatedEvent)

        self.assertTrue(self.notepad.save_message("hello"))

        self.assertEqual(self.wait_for(MessageSavedEvent)["content"], "hello")
        event = self.wait_for(MessageUpdatedEvent)
        self.assertEqual(event["content"], "hello")
        self.assertTrue(event["exists"])
        self.assertEqual(self.notepad.message, "hello")

    def test_save_before_identity(self):
        self.assertFalse(self.notepad.save_message("hello"))

        event = self.wait_for(MessageSaveFailedEvent)
        self.assertIsInstance(event["error"], NotReadyError)
        self.assertIsNone(self.store.get(self.config.document_path("u1")))

    def test_existing_message_is_loaded(self):
        self.store.set(self.config.document_path("u1"), {"content": "from last session"})

        self.notepad.start()

        event = self.wait_for(MessageUpdatedEvent)
        self.assertEqual(event["content"], "from last session")

    def test_generate_audio(self):
        future = self.notepad.generate_audio("Hello")

        self.assertIsNotNone(future)
        event = self.wait_for(AudioReadyEvent)
        self.assertEqual(event["handle"].audio_bytes, self.pcm)
        self.assertIs(self.notepad.audio_handle, event["handle"])

    def test_new_audio_releases_previous(self):
        self.notepad.generate_audio("One")
        first = self.wait_for(AudioReadyEvent)["handle"]

        self.notepad.generate_audio("Two")
        second = self.wait_for(AudioReadyEvent)["handle"]

        self.assertTrue(first.is_released())
        self.assertFalse(second.is_released())

    def test_generate_audio_with_empty_text(self):
        self.assertIsNone(self.notepad.generate_audio(""))

        event = self.wait_for(AudioFailedEvent)
        self.assertIsInstance(event["error"], InvalidInputError)
        self.session_factory.assert_not_called()

    def test_generate_audio_service_error(self):
        self.session_factory.side_effect = lambda: FakeSession(FakeResponse(500, text="error"))

        self.notepad.generate_audio("Hello")

        event = self.wait_for(AudioFailedEvent)
        self.assertIsInstance(event["error"], TransportError)
        self.assertEqual(event["error"].status_code, 500)
        self.assertIsNone(self.notepad.audio_handle)

    def test_play_audio(self):
        player = MagicMock()

        with self.assertRaises(NotReadyError):
            self.notepad.play_audio(player)

        self.notepad.generate_audio("Hello")
        handle = self.wait_for(AudioReadyEvent)["handle"]
        self.notepad.play_audio(player)

        player.play_handle.assert_called_once_with(handle)

    def test_event_callback_errors_are_contained(self):
        notepad = VoiceNotepad(
            event_callback=MagicMock(side_effect=RuntimeError("boom")),
            config=self.config,
            identity_provider=StaticIdentityProvider("u2"),
            store=self.store,
            pipeline=SpeechSynthesisPipeline(self.config, session_factory=self.session_factory),
        )
        try:
            notepad.start()
            with self.assertLogs("voice_notes.voice_notepad", level="ERROR") as logs:
                self.assertTrue(notepad.save_message("hello"))
        finally:
            notepad.terminate()

        record = next(r for r in logs.records if "MessageSavedEvent" in r.getMessage())
        self.assertIsNotNone(record.exc_info)

    def test_terminate_releases_audio_and_stops_sync(self):
        self.notepad.start()
        self.wait_for(MessageUpdatedEvent)
        self.notepad.generate_audio("Hello")
        handle = self.wait_for(AudioReadyEvent)["handle"]

        self.notepad.terminate()

        self.assertTrue(handle.is_released())
        self.assertEqual(self.store.listener_count(), 0)
        self.assertTrue(self.store.is_connected())
        self.assertFalse(self.notepad.save_message("late"))

    def test_terminate_detaches_from_identity_provider(self):
        provider = ManualIdentityProvider()
        notepad = VoiceNotepad(
            event_callback=self.events.put,
            config=self.config,
            identity_provider=provider,
            store=self.store,
            pipeline=self.pipeline,
        )
        notepad.start()
        notepad.terminate()

        provider.deliver("u3")

        self.assertTrue(self.events.empty())
        self.assertEqual(self.store.listener_count(), 0)

    @patch("voice_notes.voice_notepad.FirebaseIdentityProvider")
    def test_defaults_build_firebase_provider_and_store_from_config(self, mock_provider):
        notepad = VoiceNotepad(event_callback=self.events.put, config=self.config)
        try:
            mock_provider.assert_called_once_with(self.config)
            self.assertIsInstance(notepad._store, InMemoryDocumentStore)
        finally:
            notepad.terminate()


if __name__ == '__main__':
    unittest.main()
