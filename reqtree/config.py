import os
from typing import Literal
from dotenv import load_dotenv
from pydantic import BaseModel

COLLECTIONS_FILE = "collections.json"
ENVIRONMENTS_FILE = "environments.json"


class Settings(BaseModel):
    data_dir: str
    storage: Literal["file", "mongo"] = "file"
    mongo_uri: str | None = None
    mongo_db: str = "reqtree"


def load_settings() -> Settings:
    """Read settings from os.environ after loading a local .env (existing variables win)."""
    load_dotenv()
    storage = os.getenv("REQTREE_STORAGE", "file").strip().lower()
    if storage not in ("file", "mongo"):
        raise RuntimeError(
            f"[reqtree] REQTREE_STORAGE must be 'file' or 'mongo', got {storage!r}."
        )
    return Settings(
        data_dir=os.path.expanduser(os.getenv("REQTREE_DATA_DIR", "~/.reqtree")),
        storage=storage,
        mongo_uri=os.getenv("MONGO_URI") or None,
        mongo_db=os.getenv("MONGO_DB", "reqtree"),
    )
