"""Parametric keycap generation and CSG scene evaluation."""

from .cache import CacheKey, GeometryCache
from .errors import (
    BooleanOperationError,
    EmptySceneError,
    KeycapGenError,
    SceneFormatError,
    TextLayoutError,
    WorkerCrashedError,
    WorkerUnavailableError,
)
from .evaluator import Evaluator
from .generator import KeycapGenerator
from .mesh import Mesh, MeshGroup
from .params import EmbossParams, KeycapParams, Mode

__version__ = '0.1.0'
