import unittest

from voice_notes.document_sync import (
    DocumentStore,
    DocumentStoreFactory,
    InMemoryDocumentStore,
)


class DummyStore(DocumentStore):
    NAME = "DummyStoreForTest"

    def __init__(self, **kwargs):
        self.kwargs = kwargs

    def get(self, path):
        return None

    def set(self, path, data):
        pass

    def subscribe(self, path, on_change):
        return lambda: None

    def is_connected(self):
        return True


class TestDocumentStoreFactory(unittest.TestCase):
    def setUp(self):
        try:
            DocumentStoreFactory.unregister_store(DummyStore.NAME)
        except KeyError:
            pass

    def tearDown(self):
        try:
            DocumentStoreFactory.unregister_store(DummyStore.NAME)
        except KeyError:
            pass

    def test_builtin_stores(self):
        stores = DocumentStoreFactory.list_stores()
        self.assertIn("memory", stores)
        self.assertIn("firestore", stores)

    def test_create_memory_store(self):
        store = DocumentStoreFactory.create("memory")
        try:
            self.assertIsInstance(store, InMemoryDocumentStore)
            self.assertTrue(store.is_connected())
        finally:
            store.terminate()

    def test_register_create_and_unregister(self):
        DocumentStoreFactory.register_store(DummyStore.NAME, DummyStore)

        store = DocumentStoreFactory.create(DummyStore.NAME, config="cfg")
        self.assertIsInstance(store, DummyStore)
        self.assertEqual(store.kwargs, {"config": "cfg"})

        DocumentStoreFactory.unregister_store(DummyStore.NAME)
        with self.assertRaises(RuntimeError):
            DocumentStoreFactory.create(DummyStore.NAME)

    def test_unregister_unknown_raises(self):
        with self.assertRaises(KeyError):
            DocumentStoreFactory.unregister_store("does-not-exist")


if __name__ == '__main__':
    unittest.main()
