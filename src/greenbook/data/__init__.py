from greenbook.data.storage import DataStore, InMemoryStore

__all__ = ["DataStore", "InMemoryStore"]
