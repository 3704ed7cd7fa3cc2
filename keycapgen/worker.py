"""
Background export worker.

Export evaluation (hollowing, stem slot, legend, scene booleans) is slow, so
it runs on one persistent background thread that keeps its own evaluator and
geometry caches alive between exports.

Messages are plain dicts::

    request  = {'scene': <scene document dict>}
    response = {'buffer': <STL bytes>} | {'error': <message>}

Every request gets exactly one response, in submission order. Each submit
queues a ``Future`` and each response completes the oldest one.

``ExportWorkerClient.export_scene`` falls back to exporting on the calling
thread when the worker reports an error or cannot be started. A worker
whose loop dies rejects every outstanding request with
``WorkerCrashedError`` and is replaced on the next call.
"""

import asyncio
import functools
import logging
import queue
import threading
from collections import deque
from concurrent.futures import Future

from .errors import WorkerCrashedError, WorkerUnavailableError
from .evaluator import Evaluator
from .export import scene_to_stl_bytes
from .scene import Scene, scene_from_dict, scene_to_dict

logger = logging.getLogger(__name__)

_STOP = object()


def handle_request(evaluator, request):
    """Serve one request. Failures become error responses."""
    try:
        scene = scene_from_dict(request['scene'])
        return {'buffer': scene_to_stl_bytes(scene, evaluator)}
    except Exception as e:
        logger.exception("Export request failed")
        return {'error': str(e) or type(e).__name__}


def create_handler():
    """Default request handler: an evaluator owned by the worker thread."""
    return functools.partial(handle_request, Evaluator())


class ExportWorker(threading.Thread):
    """One background thread serving requests from its inbox in order."""

    def __init__(self, handler, on_crash=None):
        super().__init__(name='keycapgen-export', daemon=True)
        self.handler = handler
        self.on_crash = on_crash
        self.inbox = queue.Queue()
        self.pending = deque()
        self.crashed = False
        self.stopped = False
        self._pending_lock = threading.Lock()

    def submit(self, request):
        future = Future()
        with self._pending_lock:
            if self.crashed:
                raise WorkerCrashedError("Export worker is no longer running")
            if self.stopped:
                raise WorkerUnavailableError("Export worker is shutting down")
            self.pending.append(future)
            self.inbox.put(request)
        return future

    def stop(self):
        """Answer what is already queued, then exit. Later submits are rejected."""
        with self._pending_lock:
            if self.stopped:
                return
            self.stopped = True
            self.inbox.put(_STOP)

    def run(self):
        logger.debug("Export worker started")
        try:
            while True:
                request = self.inbox.get()
                if request is _STOP:
                    break
                self._respond(self.handler(request))
        except Exception as e:
            self._crash(e)
        else:
            self._reject_pending(WorkerUnavailableError("Export worker stopped"))
        logger.debug("Export worker stopped")

    def _respond(self, response):
        with self._pending_lock:
            future = self.pending.popleft()
        if 'error' in response:
            future.set_exception(WorkerUnavailableError(response['error']))
        else:
            future.set_result(response['buffer'])

    def _reject_pending(self, error):
        with self._pending_lock:
            drained = list(self.pending)
            self.pending.clear()
        for future in drained:
            future.set_exception(error)

    def _crash(self, error):
        logger.error("Export worker crashed: %s", error)
        with self._pending_lock:
            self.crashed = True
        self._reject_pending(WorkerCrashedError(f"Export worker crashed: {error}"))
        if self.on_crash:
            self.on_crash(self)


class ExportWorkerClient:
    """
    Asynchronous STL export through a lazily started background worker.

    Args:
        handler_factory: builds the request handler run on the worker
            thread. Called once per worker.
        evaluator_factory: builds the evaluator for the calling-thread
            fallback.
    """

    def __init__(self, handler_factory=create_handler, evaluator_factory=Evaluator):
        self.handler_factory = handler_factory
        self.evaluator_factory = evaluator_factory
        self._worker = None
        self._fallback_evaluator = None
        self._lock = threading.Lock()

    @property
    def worker(self):
        return self._worker

    def _ensure_worker(self):
        if self._worker is not None and not self._worker.crashed:
            return self._worker
        try:
            worker = ExportWorker(self.handler_factory(), on_crash=self._discard)
            worker.start()
        except Exception as e:
            raise WorkerUnavailableError(f"Export worker could not start: {e}") from e
        logger.debug("Created export worker %s", worker.ident)
        self._worker = worker
        return worker

    def _discard(self, worker):
        with self._lock:
            if self._worker is worker:
                self._worker = None

    def submit(self, scene):
        """Queue ``scene`` for export. Returns a ``Future`` of the STL bytes."""
        if isinstance(scene, Scene):
            scene = scene_to_dict(scene)
        try:
            with self._lock:
                worker = self._ensure_worker()
            return worker.submit({'scene': scene})
        except WorkerUnavailableError as e:
            future = Future()
            future.set_exception(e)
            return future

    def export_sync(self, scene):
        """Export on the calling thread."""
        if self._fallback_evaluator is None:
            self._fallback_evaluator = self.evaluator_factory()
        return scene_to_stl_bytes(scene, self._fallback_evaluator)

    async def export_scene(self, scene):
        """Export ``scene`` to STL bytes, off the event loop where possible."""
        try:
            return await asyncio.wrap_future(self.submit(scene))
        except WorkerUnavailableError as e:
            logger.warning("Export worker unavailable, exporting on the calling thread: %s", e)
            try:
                return self.export_sync(scene)
            except Exception as fallback_error:
                raise e from fallback_error

    def close(self, timeout=None):
        """Stop the worker after it has answered everything already queued."""
        with self._lock:
            worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.stop()
        worker.join(timeout)
