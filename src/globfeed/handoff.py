"""
Zero-capacity handoff channel between a producer and a single consumer.

``send`` does not return until the consumer has taken the item, so at most one
item is ever in flight. ``close`` tells the consumer no more items will come;
``abandon`` tells the producer nobody will receive any more.
"""

import threading
from typing import Generic, Iterator, Optional, TypeVar

T = TypeVar("T")

_EMPTY = object()


class ChannelClosed(Exception):
    """Raised by send on a closed or abandoned channel, and by recv once drained."""


class HandoffChannel(Generic[T]):
    """Rendezvous channel with a distinct close signal."""

    def __init__(self):
        self._cond = threading.Condition()
        self._slot: object = _EMPTY
        self._closed = False
        self._abandoned = False

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    @property
    def abandoned(self) -> bool:
        with self._cond:
            return self._abandoned

    def send(self, item: T, timeout: Optional[float] = None) -> None:
        """
        Hand ``item`` to the consumer, blocking until it has been received.

        Raises:
            ChannelClosed: If the channel was closed, or the consumer abandoned
                it before taking the item. The caller still owns ``item``.
            TimeoutError: If ``timeout`` expires first; the item is withdrawn.
        """
        with self._cond:
            if not self._cond.wait_for(
                lambda: self._slot is _EMPTY or self._closed or self._abandoned,
                timeout,
            ):
                raise TimeoutError("timed out waiting for the channel")
            if self._closed:
                raise ChannelClosed("send on closed channel")
            if self._abandoned:
                raise ChannelClosed("receiver abandoned the channel")

            self._slot = item
            self._cond.notify_all()
            taken = self._cond.wait_for(
                lambda: self._slot is not item or self._abandoned, timeout
            )
            if self._slot is item:
                self._slot = _EMPTY
                self._cond.notify_all()
                if not taken:
                    raise TimeoutError("timed out waiting for the receiver")
                raise ChannelClosed("receiver abandoned the channel")

    def recv(self, timeout: Optional[float] = None) -> T:
        """
        Take the next item, blocking until one is sent.

        Raises:
            ChannelClosed: Once the channel is closed and holds no item
            TimeoutError: If ``timeout`` expires first
        """
        with self._cond:
            if not self._cond.wait_for(
                lambda: self._slot is not _EMPTY or self._closed, timeout
            ):
                raise TimeoutError("timed out waiting for an item")
            if self._slot is _EMPTY:
                raise ChannelClosed("channel closed")
            item = self._slot
            self._slot = _EMPTY
            self._cond.notify_all()
            return item  # type: ignore[return-value]

    def close(self) -> None:
        """Signal that no further items will be sent."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def abandon(self) -> None:
        """Signal that the consumer will not receive any further items."""
        with self._cond:
            self._abandoned = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.recv()
            except ChannelClosed:
                return
