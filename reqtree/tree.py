"""
CollectionTree: an id-keyed arena over the nested collections forest.

The persisted document nests children inside their parent. The arena keeps
three tables instead:

    _nodes     id -> CollectionNode (its `children` field is not used here)
    _parent    id -> parent id, or None for root-level nodes
    _children  parent id (None = root) -> ordered list of child ids

so that lookups, ancestor paths and cycle checks are id walks up the parent
table. to_nodes() rebuilds the nested forest for saving.
"""
import logging

from reqtree.errors import CyclicMove, DuplicateName, InvalidStructure, NotACollection, NotFound
from reqtree.models import CollectionNode, CollectionSettings, HttpRequest, now_iso

logger = logging.getLogger(__name__)


class CollectionTree:

    def __init__(self, roots: list[CollectionNode] | None = None):
        self._nodes: dict[str, CollectionNode] = {}
        self._parent: dict[str, str | None] = {}
        self._children: dict[str | None, list[str]] = {None: []}
        for node in roots or []:
            self._index(node, None)

    def _index(self, node: CollectionNode, parent_id: str | None) -> None:
        if node.id in self._nodes:
            raise InvalidStructure(f"Duplicate node id {node.id}")
        self._nodes[node.id] = node.model_copy(update={"children": None}, deep=True)
        self._parent[node.id] = parent_id
        self._children[parent_id].append(node.id)
        if node.is_collection:
            self._children[node.id] = []
            for child in node.children or []:
                self._index(child, node.id)
            # remember whether the stored document had a children list at all
            if node.children is not None:
                self._nodes[node.id].children = []

    # ── Queries ───────────────────────────────────────────────────────────────

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def find(self, node_id: str) -> CollectionNode | None:
        return self._nodes.get(node_id)

    def get(self, node_id: str) -> CollectionNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFound(f"Node with id {node_id} not found")
        return node

    def parent_of(self, node_id: str) -> str | None:
        self.get(node_id)
        return self._parent[node_id]

    def children_of(self, parent_id: str | None) -> list[CollectionNode]:
        if parent_id is not None:
            self._require_collection(parent_id)
        return [self._nodes[i] for i in self._children[parent_id]]

    def ancestors(self, node_id: str) -> list[str]:
        """Collection ids from the root down to the node's parent; [] if unknown."""
        if node_id not in self._nodes:
            return []
        path = []
        current = self._parent[node_id]
        while current is not None:
            path.append(current)
            current = self._parent[current]
        path.reverse()
        return path

    def is_self_or_descendant(self, candidate_id: str, node_id: str) -> bool:
        """True when candidate_id is node_id itself or sits somewhere below it."""
        current = candidate_id
        while current is not None:
            if current == node_id:
                return True
            current = self._parent.get(current)
        return False

    def subtree(self, node_id: str) -> CollectionNode:
        """A detached copy of the node with its nested children rebuilt."""
        self.get(node_id)
        return self._build(node_id)

    def to_nodes(self, parent_id: str | None = None) -> list[CollectionNode]:
        return [self._build(child_id) for child_id in self._children[parent_id]]

    def _build(self, node_id: str) -> CollectionNode:
        # arena nodes hold no nested children, so each node is deep-copied exactly once
        node = self._nodes[node_id]
        copy = node.model_copy(deep=True)
        if node.is_collection:
            children = [self._build(child_id) for child_id in self._children[node_id]]
            copy.children = None if not children and node.children is None else children
        return copy

    # ── Validation ────────────────────────────────────────────────────────────

    def _require_collection(self, parent_id: str) -> CollectionNode:
        parent = self._nodes.get(parent_id)
        if parent is None:
            raise NotFound(f"Parent collection with id {parent_id} not found")
        if not parent.is_collection:
            raise NotACollection(f"Node with id {parent_id} is not a collection")
        return parent

    def _check_name(self, parent_id: str | None, name: str, exclude_id: str | None = None) -> None:
        for sibling_id in self._children[parent_id]:
            if sibling_id != exclude_id and self._nodes[sibling_id].name == name:
                where = "at root level" if parent_id is None else "in this parent"
                raise DuplicateName(f'A node with name "{name}" already exists {where}')

    def _touch(self, node_id: str | None, now: str) -> None:
        if node_id is not None:
            self._nodes[node_id].updated_at = now

    def _detach(self, node_id: str) -> str | None:
        parent_id = self._parent[node_id]
        self._children[parent_id].remove(node_id)
        return parent_id

    def _attach(self, node_id: str, parent_id: str | None) -> None:
        self._children[parent_id].append(node_id)
        self._parent[node_id] = parent_id

    # ── Mutations ─────────────────────────────────────────────────────────────

    def create_collection(self, name: str, parent_id: str | None = None) -> CollectionNode:
        if parent_id is not None:
            self._require_collection(parent_id)
        self._check_name(parent_id, name)

        now = now_iso()
        node = CollectionNode(name=name, type="collection", created_at=now, updated_at=now, children=[])
        self._nodes[node.id] = node
        self._children[node.id] = []
        self._attach(node.id, parent_id)
        self._touch(parent_id, now)
        logger.debug("Created collection %s (%r) under %s", node.id, name, parent_id)
        return node

    def save_request(
        self,
        name: str,
        request: HttpRequest,
        parent_id: str | None = None,
        existing_id: str | None = None,
    ) -> CollectionNode:
        if parent_id is not None:
            self._require_collection(parent_id)
        now = now_iso()

        if existing_id is None:
            self._check_name(parent_id, name)
            node = CollectionNode(
                name=name, type="request", created_at=now, updated_at=now, request=request.model_copy(deep=True)
            )
            self._nodes[node.id] = node
            self._attach(node.id, parent_id)
            self._touch(parent_id, now)
            logger.debug("Created request %s (%r) under %s", node.id, name, parent_id)
            return node

        node = self._nodes.get(existing_id)
        if node is None:
            raise NotFound(f"Request with id {existing_id} not found")
        if node.is_collection:
            raise InvalidStructure(f"Node with id {existing_id} is not a request")
        self._check_name(parent_id, name, exclude_id=existing_id)

        node.name = name
        node.request = request.model_copy(deep=True)
        node.updated_at = now
        old_parent_id = self._parent[existing_id]
        if old_parent_id != parent_id:
            self._detach(existing_id)
            self._attach(existing_id, parent_id)
            self._touch(old_parent_id, now)
            self._touch(parent_id, now)
            logger.debug("Moved request %s from %s to %s", existing_id, old_parent_id, parent_id)
        return node

    def delete(self, node_id: str) -> bool:
        if node_id not in self._nodes:
            return False
        parent_id = self._detach(node_id)
        stack = [node_id]
        while stack:
            current = stack.pop()
            stack.extend(self._children.pop(current, []))
            del self._nodes[current]
            del self._parent[current]
        self._touch(parent_id, now_iso())
        logger.debug("Deleted node %s", node_id)
        return True

    def rename(self, node_id: str, new_name: str) -> CollectionNode:
        node = self.get(node_id)
        self._check_name(self._parent[node_id], new_name, exclude_id=node_id)
        node.name = new_name
        node.updated_at = now_iso()
        return node

    def move(self, node_id: str, new_parent_id: str | None = None) -> CollectionNode:
        node = self.get(node_id)
        if new_parent_id is not None:
            if self.is_self_or_descendant(new_parent_id, node_id):
                raise CyclicMove("Cannot move a collection into itself or its descendants")
            self._require_collection(new_parent_id)
        self._check_name(new_parent_id, node.name, exclude_id=node_id)

        now = now_iso()
        old_parent_id = self._detach(node_id)
        self._attach(node_id, new_parent_id)
        self._touch(old_parent_id, now)
        self._touch(new_parent_id, now)
        node.updated_at = now
        logger.debug("Moved node %s from %s to %s", node_id, old_parent_id, new_parent_id)
        return node

    def update_settings(self, node_id: str, settings: CollectionSettings | None) -> CollectionNode:
        node = self.get(node_id)
        if not node.is_collection:
            raise InvalidStructure(f"Node with id {node_id} is not a collection")
        node.settings = settings.model_copy(deep=True) if settings is not None else None
        node.updated_at = now_iso()
        return node
