"""Identity tokens for opaque objects.

Page objects cannot be used directly as set members or dict keys:
BeautifulSoup tags compare by content, so two identical ``<li>`` elements
are equal, and component instances may be duplicated by the runtime.  An
IdentityMap hands out a string token per distinct object, keyed by object
identity, so composite identities can be built by string concatenation.
"""

from __future__ import annotations

from typing import Any

NULL_TOKEN = "@null"


class IdentityMap:
    """Lazily assigns ``@N`` tokens to objects.

    Tokens are stable for the lifetime of the map.  Every object seen is kept
    alive by the map, so ``id()`` values cannot be recycled while it exists.
    """

    def __init__(self) -> None:
        self._tokens: dict[int, tuple[Any, str]] = {}
        self._next_id = 0

    def token(self, obj: Any) -> str:
        """Return the token for ``obj``; ``None`` always maps to NULL_TOKEN."""
        if obj is None:
            return NULL_TOKEN
        entry = self._tokens.get(id(obj))
        if entry is not None:
            return entry[1]
        self._next_id += 1
        token = f"@{self._next_id}"
        self._tokens[id(obj)] = (obj, token)
        return token

    def same(self, a: Any, b: Any) -> bool:
        return self.token(a) == self.token(b)

    def clear(self) -> None:
        self._tokens.clear()
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._tokens)
