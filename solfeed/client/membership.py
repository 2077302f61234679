"""Per-user membership cache: which posts the signed-in user has liked or reposted.

Owned by the client session and mutated only by the toggle controller (and by
``replace`` when the session rebuilds from the server). Each change is written
through to a session store so a restart comes back with the same state.
"""
import enum
import json
import logging
import os
from pathlib import Path
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)


class ToggleKind(str, enum.Enum):
    LIKE = "like"
    REPOST = "repost"

    @property
    def store_prefix(self) -> str:
        return "likes" if self is ToggleKind.LIKE else "reposts"


class SessionStore(Protocol):
    def load(self, key: str) -> list[str] | None: ...

    def save(self, key: str, values: list[str]) -> None: ...


class MemorySessionStore:
    def __init__(self):
        self._data: dict[str, list[str]] = {}

    def load(self, key: str) -> list[str] | None:
        values = self._data.get(key)
        return list(values) if values is not None else None

    def save(self, key: str, values: list[str]) -> None:
        self._data[key] = list(values)


class JsonFileSessionStore:
    """One JSON object per file, keyed like ``likes:<user_id>``."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def _read(self) -> dict[str, list[str]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Session file %s unreadable, starting empty", self.path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, key: str) -> list[str] | None:
        values = self._read().get(key)
        return [str(v) for v in values] if isinstance(values, list) else None

    def save(self, key: str, values: list[str]) -> None:
        data = self._read()
        data[key] = list(values)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)


class MembershipCache:
    def __init__(self, user_id: str, store: SessionStore | None = None):
        self.user_id = str(user_id)
        self.store = store or MemorySessionStore()
        self._sets: dict[ToggleKind, set[str]] = {}
        for kind in ToggleKind:
            self._sets[kind] = set(self.store.load(self._key(kind)) or [])

    def _key(self, kind: ToggleKind) -> str:
        return f"{kind.store_prefix}:{self.user_id}"

    def _persist(self, kind: ToggleKind) -> None:
        self.store.save(self._key(kind), sorted(self._sets[kind]))

    def has(self, kind: ToggleKind, post_id) -> bool:
        return str(post_id) in self._sets[ToggleKind(kind)]

    def add(self, kind: ToggleKind, post_id) -> None:
        kind = ToggleKind(kind)
        self._sets[kind].add(str(post_id))
        self._persist(kind)

    def remove(self, kind: ToggleKind, post_id) -> None:
        kind = ToggleKind(kind)
        self._sets[kind].discard(str(post_id))
        self._persist(kind)

    def set(self, kind: ToggleKind, post_id, active: bool) -> None:
        if active:
            self.add(kind, post_id)
        else:
            self.remove(kind, post_id)

    def replace(self, kind: ToggleKind, post_ids: Iterable) -> None:
        kind = ToggleKind(kind)
        self._sets[kind] = {str(p) for p in post_ids}
        self._persist(kind)

    def members(self, kind: ToggleKind) -> frozenset[str]:
        return frozenset(self._sets[ToggleKind(kind)])
