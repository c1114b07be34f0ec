"""
Collection settings inheritance.

Settings are merged root → leaf: a collection closer to the request wins over
its ancestors. Accepts either a CollectionTree or the nested root node list
straight out of a CollectionsConfig.
"""
from reqtree.models import CollectionNode, CollectionSettings, FieldState, KeyValuePair, field_state
from reqtree.tree import CollectionTree


def _as_tree(nodes: CollectionTree | list[CollectionNode]) -> CollectionTree:
    if isinstance(nodes, CollectionTree):
        return nodes
    return CollectionTree(nodes)


def get_ancestor_path(nodes: CollectionTree | list[CollectionNode], node_id: str) -> list[str]:
    """Collection ids from root to the node's immediate parent. Empty if the node is unknown."""
    return _as_tree(nodes).ancestors(node_id)


def find_collection_path(nodes: CollectionTree | list[CollectionNode], node_id: str) -> list[str]:
    return get_ancestor_path(nodes, node_id)


def find_parent_collection_id(nodes: CollectionTree | list[CollectionNode], node_id: str) -> str | None:
    path = get_ancestor_path(nodes, node_id)
    return path[-1] if path else None


def merge_headers(base: list[KeyValuePair], overrides: list[KeyValuePair]) -> list[KeyValuePair]:
    """
    Case-insensitive merge by header name. An override replaces the earlier
    header wholesale but keeps its position; new names are appended in the
    order first seen. Headers with an empty key are dropped.
    """
    merged: dict[str, KeyValuePair] = {}
    for header in [*base, *overrides]:
        if header.key:
            merged[header.key.lower()] = header.model_copy()
    return list(merged.values())


def merge_settings(*settings_in_order: CollectionSettings | None) -> CollectionSettings:
    merged = CollectionSettings()

    for settings in settings_in_order:
        if settings is None:
            continue

        if field_state(settings, "base_url") is FieldState.SET:
            merged.base_url = settings.base_url

        # a none-typed auth is only adopted while nothing else has been
        auth_state = field_state(settings, "auth")
        if auth_state is FieldState.SET and settings.auth.type != "none":
            merged.auth = settings.auth.model_copy(deep=True)
        elif auth_state is FieldState.SET and merged.auth is None:
            merged.auth = settings.auth.model_copy(deep=True)

        headers_state = field_state(settings, "headers")
        if headers_state is FieldState.SET:
            merged.headers = merge_headers(merged.headers or [], settings.headers)
        elif headers_state is FieldState.CLEARED and merged.headers is None:
            merged.headers = []

    return merged


def resolve_collection_settings(nodes: CollectionTree | list[CollectionNode], node_id: str) -> CollectionSettings:
    """Effective settings visible at node_id; the node's own settings (if a collection) rank highest."""
    tree = _as_tree(nodes)
    node = tree.find(node_id)
    if node is None:
        return CollectionSettings()

    chain = []
    for ancestor_id in tree.ancestors(node_id):
        ancestor = tree.get(ancestor_id)
        if ancestor.settings is not None:
            chain.append(ancestor.settings)
    if node.is_collection and node.settings is not None:
        chain.append(node.settings)

    return merge_settings(*chain)
