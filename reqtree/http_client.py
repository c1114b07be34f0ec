"""
Request resolution pipeline and the hand-off to the transport layer.

resolve_request_with_collection_settings() turns an edited request plus the
settings inherited from its collections and the active environment into the
final HttpRequest:

    1. substitute environment variables into the request
    2. prepend the inherited base URL
    3. merge inherited headers under the request's own headers
    4. inherit auth when the request's auth is none and inheritance is on

to_httpx_request() builds (but never sends) the matching httpx.Request.
"""
import httpx

from reqtree import db
from reqtree.auth import apply_auth, should_inherit_auth
from reqtree.errors import InvalidStructure
from reqtree.models import CollectionSettings, Environment, FieldState, HttpRequest, KeyValuePair, field_state
from reqtree.settings_resolver import merge_headers, resolve_collection_settings
from reqtree.tree import CollectionTree
from reqtree.variables import (
    replace_auth_variables,
    replace_pair_variables,
    replace_variables,
    resolve_request_variables,
    variables_to_map,
)

DEFAULT_CONTENT_TYPES = {
    'json': 'application/json',
    'text': 'text/plain',
}


def join_base_url(base_url: str, url: str) -> str:
    """Join with exactly one slash between the parts. Absolute request URLs are not special-cased."""
    base_url = base_url.strip()
    url = url.strip()
    if not base_url or not url:
        return url
    return base_url.rstrip('/') + '/' + url.lstrip('/')


def resolve_request_with_collection_settings(
    request: HttpRequest,
    collection_settings: CollectionSettings | None,
    active_environment: Environment | None,
) -> HttpRequest:
    resolved = resolve_request_variables(request, active_environment)
    if collection_settings is None:
        return resolved

    variables = variables_to_map(active_environment.variables) if active_environment else {}

    if field_state(collection_settings, 'base_url') is FieldState.SET:
        base_url = replace_variables(collection_settings.base_url.strip(), variables).strip()
        resolved.url = join_base_url(base_url, resolved.url)

    # request headers win on a case-insensitive name clash
    if field_state(collection_settings, 'headers') is FieldState.SET:
        inherited = replace_pair_variables(collection_settings.headers, variables)
        resolved.headers = merge_headers(inherited, resolved.headers)

    if collection_settings.auth is not None and should_inherit_auth(resolved.auth):
        resolved.auth = replace_auth_variables(collection_settings.auth, variables)

    return resolved


def resolve_for_send(
    location: str,
    node_id: str,
    active_environment: Environment | None,
    store=None,
) -> HttpRequest:
    """Load the tree at location and fully resolve the saved request node_id."""
    tree = CollectionTree(db.load_collections_config(location, store).collections)
    node = tree.get(node_id)
    if node.is_collection:
        raise InvalidStructure(f'Node with id {node_id} is not a request')
    settings = resolve_collection_settings(tree, node_id)
    return resolve_request_with_collection_settings(node.request, settings, active_environment)


# ── Transport hand-off ────────────────────────────────────────────────────────

def build_url(url: str, query_params: list[KeyValuePair]) -> str:
    """Append enabled, non-empty-key query params after any already in the URL."""
    url = url.strip()
    params = [p for p in query_params if p.enabled and p.key]
    if not params:
        return url
    target = httpx.URL(url)
    for p in params:
        target = target.copy_add_param(p.key, p.value)
    return str(target)


def to_httpx_request(request: HttpRequest) -> httpx.Request:
    """
    Build an unsent httpx.Request from a resolved request. Auth is
    materialized here; disabled headers and params are dropped.
    """
    prepared = apply_auth(request)
    if not prepared.url.strip():
        raise ValueError('URL is required')

    url = prepared.url.strip()
    if not url.startswith(('http://', 'https://', '//')):
        url = 'https://' + url
    url = build_url(url, prepared.query_params)

    headers = [(h.key, h.value) for h in prepared.headers if h.enabled and h.key]

    content = None
    if prepared.method not in ('GET', 'HEAD') and prepared.body.type != 'none':
        content = prepared.body.content.encode('utf-8')
        default_type = DEFAULT_CONTENT_TYPES.get(prepared.body.type)
        if default_type and 'content-type' not in {k.lower() for k, _ in headers}:
            headers.append(('Content-Type', default_type))

    return httpx.Request(prepared.method, url, headers=headers, content=content)
