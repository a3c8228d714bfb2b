"""JSON codec for cache snapshots and pending-mutation lists."""

import json
from typing import Any

from cache_patterns.errors import SerializationError
from cache_patterns.models import Entity


class EntityCodec:
    """Serializes entity snapshots and pending id lists to cache bytes.

    Snapshots are stored as a JSON array of flat objects
    (``[{"id": 1, "name": "A"}, ...]``) and pending lists as a JSON array of
    integer ids. Decoding validates the shape and raises SerializationError
    on anything malformed.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def encode_snapshot(self, entities: list[Entity]) -> bytes:
        return self._dump([entity.to_dict() for entity in entities])

    def decode_snapshot(self, data: bytes) -> list[Entity]:
        """Decode a snapshot.

        Args:
            data: Bytes previously produced by encode_snapshot.

        Returns:
            list[Entity]: Entities in cached order.

        Raises:
            SerializationError: If the bytes are not a JSON array of objects
                each carrying an integer id.
        """
        payload = self._load(data)
        if not isinstance(payload, list):
            raise SerializationError("Snapshot must be a JSON array")

        entities = []
        for item in payload:
            if not isinstance(item, dict) or not _is_id(item.get("id")):
                raise SerializationError(f"Malformed snapshot entry: {item!r}")
            entities.append(Entity.from_dict(item))
        return entities

    def encode_pending(self, entity_ids: list[int]) -> bytes:
        return self._dump(list(entity_ids))

    def decode_pending(self, data: bytes) -> list[int]:
        """Decode a pending-mutation id list.

        Raises:
            SerializationError: If the bytes are not a JSON array of integers.
        """
        payload = self._load(data)
        if not isinstance(payload, list) or not all(_is_id(item) for item in payload):
            raise SerializationError("Pending list must be a JSON array of integer ids")
        return payload

    def _dump(self, payload: Any) -> bytes:
        try:
            return json.dumps(payload, ensure_ascii=False).encode(self._encoding)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot serialize payload: {exc}") from exc

    def _load(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode(self._encoding))
        except (UnicodeDecodeError, ValueError) as exc:
            raise SerializationError(f"Malformed cached bytes: {exc}") from exc


def _is_id(value: Any) -> bool:
    # bool is an int subclass but never a valid id
    return isinstance(value, int) and not isinstance(value, bool)
