from progression_engine.storage.profile_store import InMemoryProfileStore, JsonFileProfileStore, ProfileStore

__all__ = ["ProfileStore", "JsonFileProfileStore", "InMemoryProfileStore"]
