"""Error taxonomy for the cache-consistency layer."""


class CacheLayerError(Exception):
    """Base class for failures surfaced by the cache-consistency layer."""

    pass


class StoreUnavailableError(CacheLayerError):
    """Raised when a record store query or connection fails."""

    pass


class CacheUnavailableError(CacheLayerError):
    """Raised when the cache store fails for any reason other than a miss."""

    pass


class EntityNotFoundError(CacheLayerError):
    """Raised when an update targets an id absent from the snapshot."""

    def __init__(self, entity_id: int) -> None:
        super().__init__(f"Entity {entity_id} not found")
        self.entity_id = entity_id


class SerializationError(CacheLayerError):
    """Raised when cached bytes cannot be decoded."""

    pass


__all__ = [
    "CacheLayerError",
    "CacheUnavailableError",
    "EntityNotFoundError",
    "SerializationError",
    "StoreUnavailableError",
]
