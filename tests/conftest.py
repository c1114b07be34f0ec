import pytest

from reqtree.db import FileDocumentStore
from reqtree.models import AuthConfig, BearerAuth, HttpRequest, KeyValuePair


class FakeMongoCollection:
    """Just enough of pymongo's Collection for MongoDocumentStore."""

    def __init__(self):
        self.docs = {}

    def find_one(self, query):
        doc = self.docs.get(query["_id"])
        return dict(doc) if doc is not None else None

    def replace_one(self, query, replacement, upsert=False):
        if query["_id"] in self.docs or upsert:
            self.docs[query["_id"]] = dict(replacement)


@pytest.fixture
def location(tmp_path):
    return str(tmp_path / "data")


@pytest.fixture
def store():
    return FileDocumentStore()


@pytest.fixture
def fake_mongo():
    return FakeMongoCollection()


@pytest.fixture
def get_users():
    return HttpRequest(
        url="/users",
        method="GET",
        headers=[KeyValuePair(key="Accept", value="application/json")],
    )


@pytest.fixture
def bearer_auth():
    return AuthConfig(type="bearer", bearer=BearerAuth(token="secret"))
