from dataclasses import dataclass
from typing import Optional
import re

_STORE_PATH_RE = re.compile(r"^/nix/store/([0-9a-z]{32})-(.+)$")


@dataclass(frozen=True)
class StorePath:
    """
    Value Object referencing an already-built closure.
    Treated as an opaque blob identifier; only absoluteness is enforced.
    """
    value: str

    def __post_init__(self):
        if not self.value:
            raise ValueError("Store path cannot be empty")
        if not self.value.startswith("/"):
            raise ValueError(f"Store path must be absolute: {self.value!r}")

    @property
    def hash_part(self) -> Optional[str]:
        m = _STORE_PATH_RE.match(self.value)
        return m.group(1) if m else None

    @property
    def name_part(self) -> Optional[str]:
        m = _STORE_PATH_RE.match(self.value)
        return m.group(2) if m else None

    def __str__(self):
        return self.value
