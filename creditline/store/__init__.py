from creditline.store.base import SubscriptionStore
from creditline.store.memory import InMemorySubscriptionStore

__all__ = ["SubscriptionStore", "InMemorySubscriptionStore"]
