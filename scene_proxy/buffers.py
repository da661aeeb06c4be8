"""Zero-copy, single-step views over bulk device memory."""
from __future__ import annotations

from typing import Any, Iterator, Optional, Protocol, Tuple

import numpy as np

from low_level_interface.interface import RawImage

from .errors import ExpiredBufferError


class GenerationClock(Protocol):
    generation: int


class BufferView:
    """Read-only numpy view over engine-owned memory, valid for one step.

    The engine overwrites the underlying memory on later samples, so every
    data access compares the view's step generation against the clock and
    raises ExpiredBufferError once a step boundary has passed. Use copy()
    to keep the data.
    """

    __slots__ = ("_array", "_generation", "_clock", "name")

    def __init__(self, array: np.ndarray, clock: GenerationClock, *, name: Optional[str] = None) -> None:
        if array.flags.writeable:
            array = array.view()
            array.flags.writeable = False
        self._array = array
        self._clock = clock
        self._generation = clock.generation
        self.name = name

    @classmethod
    def from_raw(cls, raw: RawImage, clock: GenerationClock, *, name: Optional[str] = None) -> "BufferView":
        array = np.frombuffer(raw.buffer, dtype=np.dtype(raw.dtype)).reshape(raw.shape)
        return cls(array, clock, name=name)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_expired(self) -> bool:
        return self._clock.generation != self._generation

    def _checked(self) -> np.ndarray:
        current = self._clock.generation
        if current != self._generation:
            label = f" '{self.name}'" if self.name else ""
            raise ExpiredBufferError(
                f"Buffer{label} was captured at step {self._generation} and expired at step {current}; "
                "call copy() within the step to retain it"
            )
        return self._array

    @property
    def array(self) -> np.ndarray:
        return self._checked()

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._array.shape

    @property
    def dtype(self) -> np.dtype:
        return self._array.dtype

    @property
    def ndim(self) -> int:
        return self._array.ndim

    def copy(self) -> np.ndarray:
        """Durable, writeable copy of the current data."""
        return self._checked().copy()

    def tolist(self) -> list:
        return self._checked().tolist()

    def __array__(self, dtype: Any = None, copy: Optional[bool] = None) -> np.ndarray:
        array = self._checked()
        if dtype is not None and np.dtype(dtype) != array.dtype:
            return array.astype(dtype)
        if copy:
            return array.copy()
        return array

    def __getitem__(self, key: Any) -> Any:
        return self._checked()[key]

    def __len__(self) -> int:
        return len(self._checked())

    def __iter__(self) -> Iterator[Any]:
        return iter(self._checked())

    def __repr__(self) -> str:
        state = "expired" if self.is_expired else "live"
        return f"BufferView(shape={self.shape}, dtype={self.dtype}, step={self._generation}, {state})"


__all__ = ["BufferView", "GenerationClock"]
