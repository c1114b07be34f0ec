import random
import string
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Literal
from pydantic import BaseModel, Field, ConfigDict, model_validator

DEFAULT_VERSION = "1.0.0"

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
BodyType = Literal["none", "json", "text", "form-data"]
AuthType = Literal["none", "basic", "bearer", "api-key"]


def generate_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"node_{int(time.time() * 1000)}_{suffix}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Primitives ────────────────────────────────────────────────────────────────

class KeyValuePair(_Model):
    key: str = ""
    value: str = ""
    enabled: bool = True


class BasicAuth(_Model):
    username: str = ""
    password: str = ""


class BearerAuth(_Model):
    token: str = ""


class ApiKeyAuth(_Model):
    key: str = ""
    value: str = ""
    add_to: Literal["header", "query"] = Field(default="header", alias="addTo")


class AuthConfig(_Model):
    # sub-configs for other types may linger so the UI can switch back
    type: AuthType = "none"
    basic: BasicAuth | None = None
    bearer: BearerAuth | None = None
    api_key: ApiKeyAuth | None = Field(default=None, alias="apiKey")
    disable_inherit: bool | None = Field(default=None, alias="disableInherit")


class RequestBody(_Model):
    type: BodyType = "none"
    content: str = ""


class HttpRequest(_Model):
    url: str = ""
    method: HttpMethod = "GET"
    headers: list[KeyValuePair] = Field(default_factory=list)
    query_params: list[KeyValuePair] = Field(default_factory=list, alias="queryParams")
    body: RequestBody = Field(default_factory=RequestBody)
    auth: AuthConfig = Field(default_factory=AuthConfig)


def create_empty_request() -> HttpRequest:
    return HttpRequest()


# ── Collections ───────────────────────────────────────────────────────────────

class GitRemoteConfig(_Model):
    url: str
    branch: str | None = None
    sync_file_name: str | None = Field(default=None, alias="syncFileName")


class CollectionSettings(_Model):
    """
    Per-collection overrides. A field left as None has no opinion at this
    level; an empty value is an explicit clear. See field_state().
    """
    base_url: str | None = Field(default=None, alias="baseUrl")
    auth: AuthConfig | None = None
    headers: list[KeyValuePair] | None = None
    git_remote: GitRemoteConfig | None = Field(default=None, alias="gitRemote")
    last_synced_at: str | None = Field(default=None, alias="lastSyncedAt")


class FieldState(str, Enum):
    UNSET = "unset"
    CLEARED = "cleared"
    SET = "set"


def field_state(settings: CollectionSettings | None, name: str) -> FieldState:
    if settings is None:
        return FieldState.UNSET
    value = getattr(settings, name)
    if value is None:
        return FieldState.UNSET
    if isinstance(value, str) and not value.strip():
        return FieldState.CLEARED
    if isinstance(value, list) and not value:
        return FieldState.CLEARED
    return FieldState.SET


class CollectionNode(_Model):
    id: str = Field(default_factory=generate_id)
    name: str
    type: Literal["collection", "request"]
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=now_iso, alias="updatedAt")

    # collection-only fields
    children: list["CollectionNode"] | None = None
    settings: CollectionSettings | None = None

    # request-only field
    request: HttpRequest | None = None

    @model_validator(mode="after")
    def _check_shape(self):
        if self.type == "request":
            if self.request is None:
                raise ValueError(f"request node {self.id} has no request")
            if self.children:
                raise ValueError(f"request node {self.id} cannot have children")
        elif self.request is not None:
            raise ValueError(f"collection node {self.id} cannot carry a request")
        return self

    @property
    def is_collection(self) -> bool:
        return self.type == "collection"


class CollectionsConfig(_Model):
    version: str = DEFAULT_VERSION
    collections: list[CollectionNode] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_ids(self):
        seen: set[str] = set()
        stack = list(self.collections)
        while stack:
            node = stack.pop()
            if node.id in seen:
                raise ValueError(f"duplicate node id {node.id}")
            seen.add(node.id)
            stack.extend(node.children or [])
        return self


# ── Environments ──────────────────────────────────────────────────────────────

class EnvironmentVariable(_Model):
    key: str
    value: str = ""


class Environment(_Model):
    id: str = Field(default_factory=generate_id)
    name: str
    variables: list[EnvironmentVariable] = Field(default_factory=list)
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=now_iso, alias="updatedAt")
    env_file_path: str | None = Field(default=None, alias="envFilePath")


class EnvironmentsConfig(_Model):
    version: str = DEFAULT_VERSION
    environments: list[Environment] = Field(default_factory=list)
    active_environment_id: str | None = Field(default=None, alias="activeEnvironmentId")
