"""Queues connecting the position source, the output sink and the caller."""

import queue
import threading
from typing import Iterator, Optional

from .common import SAMPLE_QUEUE_SIZE
from .models import Position, Status

_CLOSED = object()


class SampleChannel:
    """
    Bounded position queue with an explicit close, so the consumer can
    iterate until the producer is done.
    """

    def __init__(self, maxsize: int = SAMPLE_QUEUE_SIZE):
        self._q: queue.Queue = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._closed = False        # end marker queued
        self._finished = False      # end marker consumed

    def put(self, pos: Position, timeout: Optional[float] = None):
        if self._closed:
            raise RuntimeError("put on closed sample channel")
        self._q.put(pos, timeout=timeout)

    def close(self):
        """Queue the end marker. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._q.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, timeout: Optional[float] = None) -> Optional[Position]:
        """Next position, or None once the channel is closed and empty."""
        if self._finished:
            return None
        item = self._q.get(timeout=timeout)
        if item is _CLOSED:
            self._finished = True
            return None
        return item

    def __iter__(self) -> Iterator[Position]:
        while True:
            pos = self.get()
            if pos is None:
                return
            yield pos

    def drain(self) -> int:
        """Discard everything up to the end marker; returns the count dropped."""
        dropped = 0
        for _ in self:
            dropped += 1
        return dropped


class StatusStream:
    """Merged status feed of one run; iteration ends when the run has finished."""

    def __init__(self):
        self._q: queue.Queue = queue.Queue()
        self._done = threading.Event()
        self._finished = False

    def put(self, status: Status):
        self._q.put(status)

    def close(self):
        self._q.put(_CLOSED)
        self._done.set()

    @property
    def closed(self) -> bool:
        """True once both pipeline workers have terminated."""
        return self._done.is_set()

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def get(self, timeout: Optional[float] = None) -> Optional[Status]:
        """
        Next status, or None after the end of the stream.
        Raises queue.Empty when *timeout* expires first.
        """
        if self._finished:
            return None
        item = self._q.get(timeout=timeout)
        if item is _CLOSED:
            self._finished = True
            return None
        return item

    def __iter__(self) -> Iterator[Status]:
        while True:
            status = self.get()
            if status is None:
                return
            yield status
