"""Issue node ids that are never handed out twice within a session."""

import random
import string
import time
from collections.abc import Callable, Iterable

from tree_editor.config import ID_PREFIX, ID_RANDOM_LENGTH, VIRTUAL_ROOT_ID

IdFactory = Callable[[], str]

_ALPHABET = string.ascii_lowercase + string.digits


class IdGenerator:
    """Generate ``node-<epoch ms>-<random>`` ids.

    Every id issued, and every id reserved from a loaded document, is
    remembered, so deleted ids are never reused and pasted nodes never
    collide with existing ones.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._seen: set[str] = {VIRTUAL_ROOT_ID}

    def __call__(self) -> str:
        return self.new_id()

    def new_id(self) -> str:
        """Return a fresh id."""
        while True:
            suffix = "".join(self._rng.choices(_ALPHABET, k=ID_RANDOM_LENGTH))
            candidate = f"{ID_PREFIX}-{int(self._clock() * 1000)}-{suffix}"
            if candidate not in self._seen:
                self._seen.add(candidate)
                return candidate

    def reserve(self, ids: Iterable[str]) -> None:
        """Mark ids of an existing document as taken."""
        self._seen.update(ids)
