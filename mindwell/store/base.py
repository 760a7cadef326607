"""
Document store and identity provider interfaces

The engine never talks to storage itself. It describes each write as one
DocumentUpdate, which a store applies atomically:

1. set_fields are overwritten
2. increments are added to numeric fields
3. each GuardedUnlock appends its item to a list field and applies its own
   increments only if the item was absent

Step 3 makes unlock application idempotent: replaying the same update (a
retry, a second tab, a stale snapshot) can't grant the same XP twice.
"""

import copy
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from mindwell.exceptions import ValidationError

logger = logging.getLogger(__name__)


Document = Dict[str, Any]
ChangeCallback = Callable[[str, Document], Union[None, Awaitable[None]]]


class GuardedUnlock(BaseModel):
    """Append `item` to list `field`; apply `increments` only if it was absent"""
    field: str
    item: Union[int, str]
    increments: Dict[str, int] = Field(default_factory=dict)


class DocumentUpdate(BaseModel):
    """One atomic write to a user document"""
    set_fields: Dict[str, Any] = Field(default_factory=dict)
    increments: Dict[str, Union[int, float]] = Field(default_factory=dict)
    unlocks: List[GuardedUnlock] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.set_fields or self.increments or self.unlocks)

    def merge(self, other: "DocumentUpdate") -> "DocumentUpdate":
        """Combine two updates; `other` wins on conflicting set_fields"""
        increments = dict(self.increments)
        for key, delta in other.increments.items():
            increments[key] = increments.get(key, 0) + delta
        return DocumentUpdate(
            set_fields={**self.set_fields, **other.set_fields},
            increments=increments,
            unlocks=[*self.unlocks, *other.unlocks],
        )


def apply_update_to_document(document: Optional[Document], update: DocumentUpdate) -> Document:
    """
    Pure application of a DocumentUpdate to a document snapshot

    Returns:
        A new document; the input is not modified
    """
    result = copy.deepcopy(document) if document else {}

    for key, value in update.set_fields.items():
        result[key] = copy.deepcopy(value)

    for key, delta in update.increments.items():
        result[key] = (result.get(key) or 0) + delta

    for unlock in update.unlocks:
        items = list(result.get(unlock.field) or [])
        if unlock.item in items:
            logger.debug(f"Skipping unlock {unlock.field}:{unlock.item}, already present")
            continue
        items.append(unlock.item)
        result[unlock.field] = items
        for key, delta in unlock.increments.items():
            result[key] = (result.get(key) or 0) + delta

    return result


class DocumentStore(ABC):
    """
    Per-user document store

    Subclasses implement storage; subscription bookkeeping lives here and
    subclasses call `_notify` after every successful write.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[ChangeCallback]] = {}

    @abstractmethod
    async def get(self, user_id: str) -> Optional[Document]:
        """Snapshot of the user's document, or None if it doesn't exist"""

    @abstractmethod
    async def set(self, user_id: str, document: Document) -> None:
        """Replace the whole document"""

    @abstractmethod
    async def update(self, user_id: str, fields: Document) -> None:
        """Overwrite the given top-level fields"""

    @abstractmethod
    async def increment_field(self, user_id: str, field: str, delta: float) -> None:
        """Atomically add `delta` to a numeric field"""

    @abstractmethod
    async def apply_update(self, user_id: str, update: DocumentUpdate) -> Document:
        """Atomically apply a DocumentUpdate and return the new document"""

    def subscribe(self, user_id: str, callback: ChangeCallback) -> Callable[[], None]:
        """
        Call `callback(user_id, document)` after each write to the user's document

        Returns:
            Function that removes the subscription
        """
        self._subscribers.setdefault(user_id, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(user_id, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    async def _notify(self, user_id: str, document: Document) -> None:
        for callback in list(self._subscribers.get(user_id, [])):
            result = callback(user_id, copy.deepcopy(document))
            if inspect.isawaitable(result):
                await result


class IdentityProvider(ABC):
    """Source of the currently signed-in user"""

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        """Signed-in user id, or None"""


class StaticIdentityProvider(IdentityProvider):
    """Identity provider with a fixed (or switchable) user"""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValidationError("User id is required", field="user_id", value=user_id)
        self._user_id = user_id

    def sign_out(self) -> None:
        self._user_id = None
