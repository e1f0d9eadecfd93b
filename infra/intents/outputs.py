"""
Single-assignment output values.

An Output stands for a value that only exists once the engine has realized
the resource producing it. It settles exactly once, either with a value or
with an exception, and never changes afterwards.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Callable, FrozenSet, Iterable, List, Optional

from intents.errors import OutputAlreadyResolvedError, OutputNotResolvedError

if TYPE_CHECKING:
    from intents.graph import ResourceHandle


_PENDING = "pending"
_RESOLVED = "resolved"
_FAILED = "failed"


class Output:
    """Future-like holder for a value produced by realization."""

    def __init__(
        self,
        resources: Iterable["ResourceHandle"] = (),
        secret: bool = False,
        label: str = "",
    ) -> None:
        self._resources: FrozenSet["ResourceHandle"] = frozenset(resources)
        self._secret = secret
        self._label = label
        self._lock = threading.Lock()
        self._state = _PENDING
        self._value: Any = None
        self._error: Optional[BaseException] = None
        self._callbacks: List[Callable[["Output"], None]] = []

    @classmethod
    def from_value(cls, value: Any, secret: bool = False) -> "Output":
        """Wrap a value that is already known."""
        out = cls(secret=secret)
        out.set_result(value)
        return out

    @property
    def resources(self) -> FrozenSet["ResourceHandle"]:
        return self._resources

    @property
    def is_secret(self) -> bool:
        return self._secret

    @property
    def label(self) -> str:
        return self._label

    def done(self) -> bool:
        return self._state != _PENDING

    def failed(self) -> bool:
        return self._state == _FAILED

    def result(self) -> Any:
        if self._state == _PENDING:
            raise OutputNotResolvedError(f"Output {self._label or '<anonymous>'} is not resolved yet")
        if self._state == _FAILED:
            assert self._error is not None
            raise self._error
        return self._value

    def exception(self) -> Optional[BaseException]:
        if self._state == _PENDING:
            raise OutputNotResolvedError(f"Output {self._label or '<anonymous>'} is not resolved yet")
        return self._error

    def set_result(self, value: Any) -> None:
        self._settle(_RESOLVED, value, None)

    def set_exception(self, error: BaseException) -> None:
        self._settle(_FAILED, None, error)

    def _settle(self, state: str, value: Any, error: Optional[BaseException]) -> None:
        with self._lock:
            if self._state != _PENDING:
                raise OutputAlreadyResolvedError(
                    f"Output {self._label or '<anonymous>'} was already settled"
                )
            self._state = state
            self._value = value
            self._error = error
            callbacks, self._callbacks = self._callbacks, []
        # Callbacks run outside the lock so they may settle other outputs.
        for fn in callbacks:
            fn(self)

    def add_done_callback(self, fn: Callable[["Output"], None]) -> None:
        """Run ``fn(self)`` once settled; immediately if already settled."""
        with self._lock:
            if self._state == _PENDING:
                self._callbacks.append(fn)
                return
        fn(self)

    def apply(self, fn: Callable[[Any], Any]) -> "Output":
        """Derive a new Output from this one's value."""
        derived = Output(resources=self._resources, secret=self._secret, label=self._label)

        def _settled(source: "Output") -> None:
            if source.failed():
                derived.set_exception(source.exception())
                return
            try:
                value = fn(source.result())
            except Exception as ex:  # noqa: BLE001 - failure travels through the output
                derived.set_exception(ex)
                return
            derived.set_result(value)

        self.add_done_callback(_settled)
        return derived

    def __repr__(self) -> str:
        shown = "[secret]" if self._secret else repr(self._value)
        if self._state == _RESOLVED:
            return f"Output({self._label or '?'}={shown})"
        return f"Output({self._label or '?'}, {self._state})"


def join2(first: Output, second: Output, combine: Callable[[Any, Any], Any]) -> Output:
    """Combine two outputs once both have resolved.

    ``combine`` is called at most once, with both resolved values. When
    either input fails the joined output fails with the same exception
    and ``combine`` is not called.
    """
    joined = Output(
        resources=first.resources | second.resources,
        secret=first.is_secret or second.is_secret,
        label=f"join({first.label}, {second.label})",
    )
    lock = threading.Lock()
    fired = [False]

    def _settled(_: Output) -> None:
        with lock:
            if fired[0]:
                return
            failure = next((o for o in (first, second) if o.failed()), None)
            if failure is None and not (first.done() and second.done()):
                return
            fired[0] = True
        if failure is not None:
            joined.set_exception(failure.exception())
            return
        try:
            value = combine(first.result(), second.result())
        except Exception as ex:  # noqa: BLE001 - failure travels through the output
            joined.set_exception(ex)
            return
        joined.set_result(value)

    first.add_done_callback(_settled)
    second.add_done_callback(_settled)
    return joined
