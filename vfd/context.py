'''
Cancellation and deadlines for requests to the VFD server.

A Context is handed to every call that talks to the server. Cancel it from
another thread, or give it a timeout, and the call fails with a NetworkError
instead of an application error. A call waiting on the server returns as soon
as its context is cancelled or its deadline passes.
'''
import threading
import time
from typing import Callable, Optional


class ContextCancelled(Exception):
    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceeded(Exception):
    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class Context:
    '''
    Parameters:
    timeout: seconds from now after which the context expires, None for no deadline
    parent: a derived context is done when its parent is done, and cancelling
            the parent cancels it
    '''

    def __init__(self, timeout: Optional[float] = None, parent: "Context" = None):
        self.parent = parent
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks = []
        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            if deadline is None or parent.deadline < deadline:
                deadline = parent.deadline
        self.deadline = deadline

        self._detach = None
        if parent is not None:
            self._detach = parent.on_cancel(self.cancel)

    @classmethod
    def background(cls) -> "Context":
        return cls()

    def with_cancel(self) -> "Context":
        return Context(parent=self)

    def with_timeout(self, timeout: float) -> "Context":
        return Context(timeout=timeout, parent=self)

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        '''
        Run callback once when the context is cancelled, right away if it
        already is. Returns a function that unregisters the callback.
        '''
        with self._lock:
            if not self._cancelled.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove_callback(callback)
        callback()
        return lambda: None

    def _remove_callback(self, callback):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def cancel(self):
        with self._lock:
            if self._cancelled.is_set():
                return
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        # a cancelled child no longer needs to hear from its parent
        if self._detach is not None:
            self._detach()
            self._detach = None

    def err(self) -> Optional[Exception]:
        """None while the context is live, otherwise ContextCancelled or DeadlineExceeded."""
        if self.parent is not None:
            parent_err = self.parent.err()
            if parent_err is not None:
                return parent_err
        if self._cancelled.is_set():
            return ContextCancelled()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceeded()
        return None

    def done(self) -> bool:
        return self.err() is not None

    def remaining(self, default: Optional[float] = None) -> Optional[float]:
        """Seconds left before the deadline, or default when there is none."""
        if self.deadline is None:
            return default
        return max(self.deadline - time.monotonic(), 0.0)
