"""Identifier -> node identity index for the `id` attribute of documents."""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class NameIndex:
    """
    Not uniqueness-enforced: registering a taken name shadows the earlier
    node (last registration wins). Entries are never pruned automatically.
    """

    def __init__(self):
        self._names: Dict[str, int] = {}

    def register(self, name: str, identity: int) -> None:
        previous = self._names.get(name)
        if previous is not None and previous != identity:
            logger.debug(f"[NameIndex] '{name}' now points at {identity} (was {previous})")
        self._names[name] = identity

    def lookup(self, name: str) -> Optional[int]:
        return self._names.get(name)

    def names_of(self, identity: int):
        return sorted(name for name, target in self._names.items() if target == identity)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def clear(self) -> None:
        self._names.clear()
