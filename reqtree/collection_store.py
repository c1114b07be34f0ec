"""
Collections store: each operation loads the whole collections document for a
location, applies one CollectionTree mutation and writes the document back.
Validation errors are raised before anything is written.
"""
from reqtree import db
from reqtree.models import CollectionNode, CollectionSettings, CollectionsConfig, HttpRequest
from reqtree.tree import CollectionTree


def _load_tree(location: str, store) -> tuple[CollectionsConfig, CollectionTree]:
    config = db.load_collections_config(location, store)
    return config, CollectionTree(config.collections)


def _commit(location: str, config: CollectionsConfig, tree: CollectionTree, store) -> None:
    config.collections = tree.to_nodes()
    db.save_collections_config(location, config, store)


def get_collections_tree(location: str, store=None) -> list[CollectionNode]:
    return db.load_collections_config(location, store).collections


def get_collection_node(location: str, node_id: str, store=None) -> CollectionNode:
    _, tree = _load_tree(location, store)
    return tree.subtree(node_id)


def create_collection(location: str, name: str, parent_id: str | None = None, store=None) -> CollectionNode:
    config, tree = _load_tree(location, store)
    node = tree.create_collection(name, parent_id)
    _commit(location, config, tree, store)
    return tree.subtree(node.id)


def save_request_to_collection(
    location: str,
    name: str,
    request: HttpRequest,
    parent_id: str | None = None,
    existing_id: str | None = None,
    store=None,
) -> CollectionNode:
    """
    Create a request node under parent_id (root when None), or update
    existing_id in place, moving it when parent_id differs from its
    current parent.
    """
    config, tree = _load_tree(location, store)
    node = tree.save_request(name, request, parent_id, existing_id)
    _commit(location, config, tree, store)
    return tree.subtree(node.id)


def delete_collection_node(location: str, node_id: str, store=None) -> bool:
    config, tree = _load_tree(location, store)
    if not tree.delete(node_id):
        return False
    _commit(location, config, tree, store)
    return True


def rename_collection_node(location: str, node_id: str, new_name: str, store=None) -> CollectionNode:
    config, tree = _load_tree(location, store)
    node = tree.rename(node_id, new_name)
    _commit(location, config, tree, store)
    return tree.subtree(node.id)


def move_collection_node(
    location: str,
    node_id: str,
    new_parent_id: str | None = None,
    store=None,
) -> CollectionNode:
    config, tree = _load_tree(location, store)
    node = tree.move(node_id, new_parent_id)
    _commit(location, config, tree, store)
    return tree.subtree(node.id)


def update_collection_settings(
    location: str,
    collection_id: str,
    settings: CollectionSettings | None,
    store=None,
) -> CollectionNode:
    config, tree = _load_tree(location, store)
    node = tree.update_settings(collection_id, settings)
    _commit(location, config, tree, store)
    return tree.subtree(node.id)


def get_collection_settings(location: str, collection_id: str, store=None) -> CollectionSettings | None:
    """The collection's own settings, without anything inherited."""
    _, tree = _load_tree(location, store)
    node = tree.get(collection_id)
    return node.settings.model_copy(deep=True) if node.settings is not None else None
