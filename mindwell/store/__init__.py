"""Document store and identity provider collaborators"""

from mindwell.store.base import (
    DocumentStore,
    DocumentUpdate,
    GuardedUnlock,
    IdentityProvider,
    StaticIdentityProvider,
    apply_update_to_document,
)
from mindwell.store.memory import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "DocumentUpdate",
    "GuardedUnlock",
    "IdentityProvider",
    "StaticIdentityProvider",
    "apply_update_to_document",
    "InMemoryDocumentStore",
]
