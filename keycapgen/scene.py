"""
Scene document model.

A scene is a CSG tree of four node kinds: ``Primitive``, ``KeycapTemplate``,
``Boolean`` and ``Group``. Nodes are plain dataclasses; the evaluator
dispatches on their type in one place rather than the nodes evaluating
themselves.

Documents are JSON-compatible dicts::

    {"format": "kcs3d", "version": 1, "name": "New Scene", "root": {...}}

Units are millimetres. ``rotation`` is Euler angles in radians.
Tree helpers never mutate their input; they return new trees.
"""

from __future__ import annotations

import itertools
import json
import uuid
from dataclasses import dataclass, field, replace
from typing import List, Optional, Union

from . import constants as C
from .errors import SceneFormatError
from .params import KeycapParams

PRIMITIVE = 'Primitive'
KEYCAP = 'KeycapTemplate'
BOOLEAN = 'Boolean'
GROUP = 'Group'

_id_counter = itertools.count(1)


def new_id():
    """Short node id, unique within a session."""
    return f"n{next(_id_counter)}-{uuid.uuid4().hex[:5]}"


def reset_id_counter():
    global _id_counter
    _id_counter = itertools.count(1)


def _vec3(value):
    if value is None:
        return [0.0, 0.0, 0.0]
    values = [float(v) for v in list(value)[:3]]
    return values + [0.0] * (3 - len(values))


@dataclass
class Primitive:
    shape: str = 'box'
    params: dict = field(default_factory=dict)
    color: str = C.DEFAULT_PRIMITIVE_COLOR
    position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    id: str = field(default_factory=new_id)
    name: str = ''


@dataclass
class KeycapTemplate:
    params: KeycapParams = field(default_factory=KeycapParams)
    position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    id: str = field(default_factory=new_id)
    name: str = 'Keycap'


@dataclass
class Boolean:
    operation: str = 'subtract'
    children: list = field(default_factory=list)
    position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    id: str = field(default_factory=new_id)
    name: str = ''


@dataclass
class Group:
    children: list = field(default_factory=list)
    position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    id: str = field(default_factory=new_id)
    name: str = 'Group'


@dataclass
class UnknownNode:
    """A node of a type this version does not understand. Evaluates to nothing."""

    type: str = ''
    data: dict = field(default_factory=dict)
    id: str = ''


SceneNode = Union[Primitive, KeycapTemplate, Boolean, Group]


@dataclass
class Scene:
    root: Optional[SceneNode] = None
    name: str = 'New Scene'
    format: str = C.SCENE_FORMAT
    version: int = C.SCENE_VERSION


# --- Factories ---

def create_primitive_node(shape='box', params=None, color=C.DEFAULT_PRIMITIVE_COLOR, **overrides):
    defaults = C.PRIMITIVE_DEFAULTS.get(shape, C.PRIMITIVE_DEFAULTS['box'])
    return Primitive(
        shape=shape,
        params={**defaults, **(params or {})},
        color=color,
        name=overrides.pop('name', shape.capitalize()),
        **overrides,
    )


def create_keycap_node(params=None, **overrides):
    if params is None:
        params = KeycapParams()
    elif not isinstance(params, KeycapParams):
        params = KeycapParams.from_dict(params)
    return KeycapTemplate(params=params, **overrides)


def create_boolean_node(operation='subtract', children=None, **overrides):
    return Boolean(
        operation=operation,
        children=list(children or []),
        name=overrides.pop('name', f"Boolean ({operation})"),
        **overrides,
    )


def create_group_node(children=None, **overrides):
    return Group(children=list(children or []), **overrides)


def create_default_scene():
    """A scene holding one default keycap."""
    root = create_group_node([create_keycap_node()], id='root', name='Scene')
    return Scene(root=root)


# --- Serialisation ---

def node_to_dict(node):
    if isinstance(node, UnknownNode):
        return dict(node.data)
    base = {'id': node.id, 'name': node.name}
    if isinstance(node, Primitive):
        base.update(type=PRIMITIVE, primitive=node.shape, params=dict(node.params),
                    material={'color': node.color})
    elif isinstance(node, KeycapTemplate):
        base.update(type=KEYCAP, params=node.params.to_dict())
    elif isinstance(node, Boolean):
        base.update(type=BOOLEAN, operation=node.operation,
                    children=[node_to_dict(c) for c in node.children])
    elif isinstance(node, Group):
        base.update(type=GROUP, children=[node_to_dict(c) for c in node.children])
    base.update(position=list(node.position), rotation=list(node.rotation))
    return base


def node_from_dict(data):
    """Build a node from its document form. Unknown types become ``UnknownNode``."""
    if not isinstance(data, dict):
        return UnknownNode(type=type(data).__name__, data={})
    node_type = data.get('type')
    common = {
        'id': str(data.get('id') or new_id()),
        'position': _vec3(data.get('position')),
        'rotation': _vec3(data.get('rotation')),
    }
    if data.get('name') is not None:
        common['name'] = data['name']

    if node_type == PRIMITIVE:
        material = data.get('material') or {}
        return Primitive(
            shape=data.get('primitive') or 'box',
            params=dict(data.get('params') or {}),
            color=material.get('color') or C.DEFAULT_PRIMITIVE_COLOR,
            **common,
        )
    if node_type == KEYCAP:
        return KeycapTemplate(params=KeycapParams.from_dict(data.get('params')), **common)
    if node_type == BOOLEAN:
        return Boolean(
            operation=data.get('operation') or 'subtract',
            children=[node_from_dict(c) for c in data.get('children') or []],
            **common,
        )
    if node_type == GROUP:
        return Group(children=[node_from_dict(c) for c in data.get('children') or []], **common)
    return UnknownNode(type=str(node_type), data=dict(data), id=common['id'])


def validate_scene(raw):
    """Check the document envelope. Raises ``SceneFormatError``."""
    if not isinstance(raw, dict):
        raise SceneFormatError("Invalid scene: not an object")
    if raw.get('format') != C.SCENE_FORMAT:
        raise SceneFormatError(f"Not a .{C.SCENE_FORMAT} document")
    if raw.get('version') != C.SCENE_VERSION:
        raise SceneFormatError(f"Unsupported scene version: {raw.get('version')}")
    if not isinstance(raw.get('root'), dict):
        raise SceneFormatError("Invalid scene: missing root node")
    return raw


def scene_from_dict(raw):
    validate_scene(raw)
    return Scene(
        root=node_from_dict(raw['root']),
        name=raw.get('name') or 'Untitled',
        format=raw['format'],
        version=raw['version'],
    )


def scene_to_dict(scene):
    return {
        'version': scene.version,
        'format': scene.format,
        'name': scene.name,
        'root': node_to_dict(scene.root) if scene.root is not None else None,
    }


def serialise_scene(scene):
    return json.dumps(scene_to_dict(scene), indent=2)


def deserialise_scene(text):
    try:
        raw = json.loads(text)
    except ValueError as e:
        raise SceneFormatError("Invalid JSON in scene file") from e
    return scene_from_dict(raw)


# --- Tree helpers ---

def children_of(node):
    return getattr(node, 'children', None) or []


def find_node_by_id(root, node_id):
    if root is None:
        return None
    if root.id == node_id:
        return root
    for child in children_of(root):
        found = find_node_by_id(child, node_id)
        if found is not None:
            return found
    return None


def collect_nodes(root, out=None):
    """All nodes of the tree, depth-first, parents before children."""
    if out is None:
        out = []
    if root is None:
        return out
    out.append(root)
    for child in children_of(root):
        collect_nodes(child, out)
    return out


def duplicate_ids(root):
    seen, duplicates = set(), []
    for node in collect_nodes(root):
        if node.id in seen and node.id not in duplicates:
            duplicates.append(node.id)
        seen.add(node.id)
    return duplicates


def patch_node_by_id(root, node_id, **changes):
    """New tree with the matching node's fields replaced."""
    if root is None:
        return root
    if root.id == node_id:
        return replace(root, **changes)
    if not hasattr(root, 'children'):
        return root
    return replace(root, children=[patch_node_by_id(c, node_id, **changes) for c in root.children])


def add_child_by_id(root, parent_id, child):
    if root is None:
        return root
    if root.id == parent_id and hasattr(root, 'children'):
        return replace(root, children=[*root.children, child])
    if not hasattr(root, 'children'):
        return root
    return replace(root, children=[add_child_by_id(c, parent_id, child) for c in root.children])


def remove_node_by_id(root, node_id):
    if root is None or not hasattr(root, 'children'):
        return root
    return replace(root, children=[
        remove_node_by_id(c, node_id) for c in root.children if c.id != node_id
    ])
