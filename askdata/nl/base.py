# askdata/nl/base.py
from typing import Optional, Protocol

class TextGenerator(Protocol):
    def complete(self, system: str, user: str, max_new_tokens: Optional[int] = None) -> str:
        """Return the model's raw text reply to `user` under the `system` instructions."""
        ...
