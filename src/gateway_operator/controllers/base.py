"""Work queue and controller loop shared by the Gateway, DataPlane and ControlPlane reconcilers."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from gateway_operator.cluster import pass_deadline
from gateway_operator.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Request:
    """Key of the resource to reconcile."""

    namespace: Optional[str]
    name: str

    def __str__(self):
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


@dataclass
class Result:
    """Outcome of one reconcile pass.

    ``requeue_after`` schedules the next pass after a fixed delay; ``requeue``
    alone asks for a backoff-delayed one. ``conflict`` marks a requeue caused
    by an optimistic concurrency conflict.
    """

    requeue: bool = False
    requeue_after: float = 0.0
    conflict: bool = False


class Reconciler:
    """Base class: fetch the object, then run one pass over it."""

    kind = None

    def __init__(self, client, config, recorder=None):
        self.client = client
        self.config = config
        self.recorder = recorder

    def reconcile(self, request):
        logger.debug(f"Reconciling {self.kind} {request}")
        try:
            obj = self.client.get(self.kind, request.name, request.namespace)
        except NotFoundError:
            logger.debug(f"{self.kind} {request} not found, assuming it was deleted")
            return Result()

        if obj["metadata"].get("deletionTimestamp"):
            logger.debug(f"{self.kind} {request} is being deleted, skipping")
            return Result()

        try:
            result = self.reconcile_object(obj)
        except ConflictError as e:
            logger.debug(f"Conflict while reconciling {self.kind} {request}, retrying: {e}")
            return Result(
                requeue=True,
                requeue_after=self.config.requeue_without_backoff,
                conflict=True,
            )

        return result or Result()

    def reconcile_object(self, obj):
        """Run a single pass over ``obj``, performing at most one mutation."""
        raise NotImplementedError


class WorkQueue:
    """Deduplicating queue guaranteeing one pass per key at a time.

    A key added while it is being processed is held back and queued again
    once the running pass is done.
    """

    def __init__(self, base_delay=0.005, max_delay=300.0):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._queue = asyncio.Queue()
        self._dirty = set()
        self._processing = set()
        self._failures = {}
        self._timers = set()
        self._shutting_down = False

    def __len__(self):
        return self._queue.qsize()

    def add(self, key):
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.put_nowait(key)

    def add_after(self, key, delay):
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return

        loop = asyncio.get_running_loop()
        handle = None

        def fire():
            self._timers.discard(handle)
            self.add(key)

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)

    def backoff_delay(self, key):
        failures = self._failures.get(key, 0)
        return min(self.base_delay * (2 ** failures), self.max_delay)

    def add_rate_limited(self, key):
        delay = self.backoff_delay(key)
        self._failures[key] = self._failures.get(key, 0) + 1
        self.add_after(key, delay)

    def num_requeues(self, key):
        return self._failures.get(key, 0)

    def forget(self, key):
        self._failures.pop(key, None)

    async def get(self):
        key = await self._queue.get()
        self._processing.add(key)
        self._dirty.discard(key)
        return key

    def done(self, key):
        self._processing.discard(key)
        if key in self._dirty:
            self._queue.put_nowait(key)

    def shutdown(self):
        self._shutting_down = True
        for handle in list(self._timers):
            handle.cancel()
        self._timers.clear()


class Controller:
    """Runs a reconciler over a work queue with a bounded number of workers."""

    def __init__(self, name, reconciler, config):
        self.name = name
        self.reconciler = reconciler
        self.config = config
        self.queue = None
        self._workers = []
        self._conflicts = {}

    def enqueue(self, namespace, name):
        if self.queue is None:
            logger.debug(f"{self.name} controller not started, dropping {namespace}/{name}")
            return
        self.queue.add(Request(namespace, name))

    async def start(self):
        self.queue = WorkQueue()
        for index in range(self.config.worker_limit):
            self._workers.append(
                asyncio.create_task(self._worker(), name=f"{self.name}-worker-{index}")
            )
        logger.info(f"Started {self.name} controller with {len(self._workers)} workers")

    async def stop(self):
        if self.queue is not None:
            self.queue.shutdown()
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(f"Stopped {self.name} controller")

    async def _worker(self):
        while True:
            request = await self.queue.get()
            try:
                await self.process(request)
            finally:
                self.queue.done(request)

    async def process(self, request):
        """Run one pass for ``request`` and schedule the next one if needed."""
        timeout = self.config.reconcile_timeout
        token = pass_deadline.set(time.monotonic() + timeout)
        try:
            task = asyncio.ensure_future(
                asyncio.to_thread(self.reconciler.reconcile, request)
            )
        finally:
            pass_deadline.reset(token)

        try:
            result = await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"{self.name}: reconcile of {request} exceeded {timeout}s, retrying with backoff"
            )
            # The pass stops at its next API call; hold the key until it has
            await asyncio.wait([task])
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"{self.name}: abandoned pass for {request}: {task.exception()}")
            self.queue.add_rate_limited(request)
            return
        except Exception as e:
            logger.exception(f"{self.name}: failed to reconcile {request}: {e}")
            self.queue.add_rate_limited(request)
            return

        if result.conflict:
            conflicts = self._conflicts.get(request, 0) + 1
            if conflicts > self.config.max_conflict_requeues:
                logger.warning(
                    f"{self.name}: {request} conflicted {conflicts} times in a row, backing off"
                )
                self._conflicts.pop(request, None)
                self.queue.add_rate_limited(request)
                return
            self._conflicts[request] = conflicts
            self.queue.add_after(request, result.requeue_after)
            return

        self._conflicts.pop(request, None)
        self.queue.forget(request)
        if result.requeue_after:
            self.queue.add_after(request, result.requeue_after)
        elif result.requeue:
            self.queue.add_rate_limited(request)
