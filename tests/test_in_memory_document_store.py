import threading
import unittest

from voice_notes.document_sync import InMemoryDocumentStore
from voice_notes.errors import DocumentStoreError


class TestInMemoryDocumentStore(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def tearDown(self):
        self.store.terminate()

    def test_get_and_set(self):
        self.assertIsNone(self.store.get("a/b"))

        self.store.set("a/b", {"content": "hello"})

        self.assertEqual(self.store.get("a/b"), {"content": "hello"})

    def test_set_overwrites_whole_document(self):
        self.store.set("a/b", {"content": "hello", "extra": 1})
        self.store.set("a/b", {"content": "bye"})

        self.assertEqual(self.store.get("a/b"), {"content": "bye"})

    def test_stored_documents_are_copies(self):
        data = {"content": "hello"}
        self.store.set("a/b", data)
        data["content"] = "changed"

        self.assertEqual(self.store.get("a/b"), {"content": "hello"})

    def test_subscribe_delivers_initial_state_then_changes_in_order(self):
        received = []
        self.store.subscribe("a/b", received.append)

        for i in range(20):
            self.store.set("a/b", {"content": str(i)})
        self.store.set("a/other", {"content": "ignored"})

        self.assertTrue(self.store.flush(timeout=5))
        self.assertEqual(received, [None] + [{"content": str(i)} for i in range(20)])

    def test_notifications_run_on_dispatcher_thread(self):
        threads = []
        self.store.subscribe("a/b", lambda data: threads.append(threading.current_thread()))

        self.assertTrue(self.store.flush(timeout=5))
        self.assertNotIn(threading.current_thread(), threads)

    def test_unsubscribe_stops_delivery(self):
        received = []
        unsubscribe = self.store.subscribe("a/b", received.append)
        self.assertTrue(self.store.flush(timeout=5))

        unsubscribe()
        self.store.set("a/b", {"content": "late"})

        self.assertTrue(self.store.flush(timeout=5))
        self.assertEqual(received, [None])
        self.assertEqual(self.store.listener_count(), 0)

    def test_delete_notifies_none(self):
        received = []
        self.store.set("a/b", {"content": "hello"})
        self.store.subscribe("a/b", received.append)

        self.store.delete("a/b")

        self.assertTrue(self.store.flush(timeout=5))
        self.assertEqual(received, [{"content": "hello"}, None])

    def test_listener_errors_do_not_stop_dispatch(self):
        received = []

        def listener(data):
            received.append(data)
            raise RuntimeError("boom")

        self.store.subscribe("a/b", listener)
        self.store.set("a/b", {"content": "hello"})

        self.assertTrue(self.store.flush(timeout=5))
        self.assertEqual(received, [None, {"content": "hello"}])

    def test_disconnected_store_raises(self):
        self.store.set_connected(False)

        self.assertFalse(self.store.is_connected())
        with self.assertRaises(DocumentStoreError):
            self.store.set("a/b", {"content": "hello"})
        with self.assertRaises(DocumentStoreError):
            self.store.get("a/b")
        with self.assertRaises(DocumentStoreError):
            self.store.subscribe("a/b", lambda data: None)

        self.store.set_connected(True)
        self.store.set("a/b", {"content": "hello"})

    def test_terminate(self):
        self.store.terminate()
        self.assertFalse(self.store.is_connected())


if __name__ == '__main__':
    unittest.main()
