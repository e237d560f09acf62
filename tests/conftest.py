"""Shared fixtures: an in-memory stand-in for the Firestore client."""

import copy

import pytest

from config.firebase_config import set_db


class FirestoreWriteError(Exception):
    pass


class FakeDocumentSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, db, path):
        self._db = db
        self._path = path
        self.id = path[-1]

    def collection(self, name):
        return FakeCollectionReference(self._db, self._path + (name,))

    def get(self):
        return FakeDocumentSnapshot(self.id, self._db.documents.get(self._path))

    def set(self, data):
        self._db.check_write()
        self._db.documents[self._path] = copy.deepcopy(data)

    def update(self, updates):
        self._db.check_write()
        if self._path not in self._db.documents:
            raise KeyError(f"No document to update: {'/'.join(self._path)}")
        self._db.documents[self._path].update(copy.deepcopy(updates))

    def delete(self):
        self._db.check_write()
        self._db.documents.pop(self._path, None)


class FakeCollectionReference:
    def __init__(self, db, path):
        self._db = db
        self._path = path

    def document(self, doc_id):
        return FakeDocumentReference(self._db, self._path + (doc_id,))

    def stream(self):
        depth = len(self._path) + 1
        return [
            FakeDocumentSnapshot(path[-1], data)
            for path, data in list(self._db.documents.items())
            if len(path) == depth and path[:-1] == self._path
        ]


class FakeFirestore:
    """Just enough of google.cloud.firestore.Client for the store modules."""

    def __init__(self):
        self.documents = {}
        self.fail_writes = False

    def check_write(self):
        if self.fail_writes:
            raise FirestoreWriteError("write rejected")

    def collection(self, name):
        return FakeCollectionReference(self, (name,))


@pytest.fixture
def db():
    fake = FakeFirestore()
    set_db(fake)
    yield fake
    set_db(None)


@pytest.fixture
def barbecue_id(db):
    from firebase_store import create_barbecue
    return create_barbecue("Churrasco do Bruno", db=db)


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from main import app
    return TestClient(app)
