"""Exception types raised across the keycapgen package."""


class KeycapGenError(Exception):
    """Base class for keycapgen errors."""


class BooleanOperationError(KeycapGenError):
    """The boolean mesh kernel could not combine two meshes."""


class TextLayoutError(KeycapGenError):
    """Legend text could not be turned into geometry."""


class SceneFormatError(KeycapGenError, ValueError):
    """A scene document failed validation."""


class EmptySceneError(KeycapGenError):
    """Nothing was produced to export."""


class WorkerUnavailableError(KeycapGenError):
    """
    The export worker could not serve a request.

    Raised for worker construction failures and error responses. Callers
    catch this type to fall back to synchronous evaluation.
    """


class WorkerCrashedError(WorkerUnavailableError):
    """The export worker died while requests were outstanding."""
