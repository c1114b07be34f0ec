"""
Whole-document persistence for the collections and environments configs.

Every mutation in reqtree loads a full document, changes it in memory and
writes the full document back. Callers that share a location across threads
must serialize those mutations themselves.
"""
import json
import logging
import os
import tempfile
from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.database import Database

from reqtree.config import COLLECTIONS_FILE, ENVIRONMENTS_FILE, load_settings
from reqtree.errors import MalformedDocument
from reqtree.models import DEFAULT_VERSION, CollectionsConfig, EnvironmentsConfig

logger = logging.getLogger(__name__)

_client: MongoClient | None = None


def get_db() -> Database:
    global _client
    settings = load_settings()
    if not settings.mongo_uri:
        raise RuntimeError(
            "[reqtree] MONGO_URI is not set. "
            "Set it (or unset REQTREE_STORAGE) to use the MongoDB backend."
        )
    if _client is None:
        _client = MongoClient(settings.mongo_uri)
    return _client[settings.mongo_db]


# ── Backends ──────────────────────────────────────────────────────────────────

class FileDocumentStore:
    """Stores each document as <location>/<name> on the local filesystem."""

    def read(self, location: str, name: str) -> str | None:
        path = os.path.join(location, name)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise MalformedDocument(f"{path} is not UTF-8 text: {e}") from e
        except OSError as e:
            raise MalformedDocument(f"{path} could not be read: {e}") from e

    def write(self, location: str, name: str, content: str) -> None:
        os.makedirs(location, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=location, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, os.path.join(location, name))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class MongoDocumentStore:
    """Stores each document as one MongoDB record keyed by "<location>/<name>"."""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        if self._collection is None:
            self._collection = get_db().documents
        return self._collection

    def read(self, location: str, name: str) -> str | None:
        doc = self.collection.find_one({"_id": f"{location}/{name}"})
        if doc is None:
            return None
        data = doc.get("data")
        if not isinstance(data, str):
            raise MalformedDocument(f"record {location}/{name} has no text data")
        return data

    def write(self, location: str, name: str, content: str) -> None:
        key = f"{location}/{name}"
        self.collection.replace_one({"_id": key}, {"_id": key, "data": content}, upsert=True)


def get_store():
    if load_settings().storage == "mongo":
        return MongoDocumentStore()
    return FileDocumentStore()


# ── Documents ─────────────────────────────────────────────────────────────────

def _parse(raw: str, model):
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedDocument(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedDocument("document root is not an object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedDocument(
            f"invalid {model.__name__}: {e.error_count()} error(s)",
            recovered=_recover_scalars(data, model),
        ) from e


def _recover_scalars(data: dict, model) -> dict:
    """String-valued top-level fields (version, activeEnvironmentId) of a broken document."""
    recovered = {}
    for name, field in model.model_fields.items():
        key = field.alias or name
        if isinstance(data.get(key), str):
            recovered[key] = data[key]
    return recovered


def default_location(location: str | None) -> str:
    return location or load_settings().data_dir


def _load(location: str | None, name: str, model, store):
    location = default_location(location)
    store = store or get_store()
    try:
        raw = store.read(location, name)
        if raw is None:
            return model()
        return _parse(raw, model)
    except MalformedDocument as e:
        logger.warning("Failed to load %s from %s, using an empty document: %s", name, location, e)
        return model.model_validate({"version": DEFAULT_VERSION, **e.recovered})


def _save(location: str | None, name: str, config, store) -> None:
    location = default_location(location)
    store = store or get_store()
    store.write(location, name, json.dumps(config.to_document(), indent=2, ensure_ascii=False))
    logger.debug("Saved %s to %s", name, location)


def load_collections_config(location: str | None, store=None) -> CollectionsConfig:
    return _load(location, COLLECTIONS_FILE, CollectionsConfig, store)


def save_collections_config(location: str | None, config: CollectionsConfig, store=None) -> None:
    _save(location, COLLECTIONS_FILE, config, store)


def load_environments_config(location: str | None, store=None) -> EnvironmentsConfig:
    return _load(location, ENVIRONMENTS_FILE, EnvironmentsConfig, store)


def save_environments_config(location: str | None, config: EnvironmentsConfig, store=None) -> None:
    _save(location, ENVIRONMENTS_FILE, config, store)
