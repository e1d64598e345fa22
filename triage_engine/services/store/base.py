"""
Session store contract.
"""

from typing import Optional, Protocol

from ...core.models import ConversationRecord


class SessionStore(Protocol):
    """Persistence for one conversation record per session id."""

    async def open(self) -> None:
        """Prepare the store for use (called at service start)."""
        ...

    async def close(self) -> None:
        """Release the store (called at shutdown)."""
        ...

    async def load(self, session_id: str) -> Optional[ConversationRecord]:
        """Return the stored record for ``session_id`` or None."""
        ...

    async def save(
        self, previous_version: Optional[int], record: ConversationRecord
    ) -> bool:
        """Conditionally write ``record``.

        Succeeds only if the stored version still equals
        ``previous_version`` (or, for ``None``, if no row exists yet).
        Returns False when another writer got there first.
        """
        ...

    async def save_summary(self, session_id: str, summary: str) -> bool:
        """Replace the advisory summary of an existing session."""
        ...
