import queue
import threading
from typing import Callable, List, Optional

from maze_tui.core.errors import ChannelClosed

# How long a blocked send waits before re-checking its stop condition
SEND_POLL = 0.02


class EventChannel:
    """
    Bounded FIFO between the compute and render workers.

    A full channel blocks `send`, which is the backpressure that keeps a fast
    algorithm from outrunning the painter. Closing tears the channel down:
    pending items are dropped, not drained, and both ends then raise ChannelClosed.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("Channel capacity must be positive")
        self.capacity = capacity
        self._queue = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def qsize(self) -> int:
        return self._queue.qsize()

    def send(self, item, should_stop: Optional[Callable[[], bool]] = None) -> bool:
        """
        Blocks while the channel is full. Returns False if `should_stop`
        fired first, in which case the item is abandoned.
        """
        while True:
            if self._closed.is_set():
                raise ChannelClosed("send on closed channel")
            if should_stop is not None and should_stop():
                return False
            try:
                self._queue.put(item, timeout=SEND_POLL)
                return True
            except queue.Full:
                continue

    def receive(self, timeout: Optional[float] = None):
        """Returns the next item, or None when nothing arrived within `timeout`."""
        if self._closed.is_set():
            raise ChannelClosed("receive on closed channel")
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def receive_batch(self, limit: int, timeout: Optional[float] = None) -> List:
        """Waits up to `timeout` for the first item, then takes whatever else is ready, up to `limit`."""
        first = self.receive(timeout)
        if first is None:
            return []
        items = [first]
        while len(items) < limit:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return items

    def close(self):
        self._closed.set()
