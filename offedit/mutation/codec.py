"""
Conversion between (feature, layer, operation) triples and stored records.

Geometry is written structurally (type tag, spatial reference and coordinate
arrays) so it can be rebuilt without the host's geometry classes. Attributes
go through an AttributeCodec and are stored as an opaque string.

Record payloads are compact JSON with sorted keys, so two encodings of the
same edit are byte-identical. Deduplication relies on this.
"""
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional, Protocol

from ..errors import UnparsableRecordError
from ..store.base import size_of
from ..store.framing import frame_record
from .models import DecodedMutation, Feature, Geometry, Mutation, Operation, Point, Polygon, Polyline

logger = logging.getLogger(__name__)


class AttributeCodec(Protocol):
    """Turns attribute mappings into strings and back. Failures may raise anything."""

    def serialize(self, attributes: Mapping[str, Any]) -> str:
        ...

    def deserialize(self, data: str) -> Mapping[str, Any]:
        ...


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonAttributeCodec:
    """Default AttributeCodec: JSON objects, dates written as ISO-8601 strings."""

    def serialize(self, attributes: Mapping[str, Any]) -> str:
        return json.dumps(dict(attributes), sort_keys=True, separators=(",", ":"), default=_json_default)

    def deserialize(self, data: str) -> Mapping[str, Any]:
        value = json.loads(data)
        if not isinstance(value, dict):
            raise ValueError(f"attributes must decode to an object, got {type(value).__name__}")
        return value


def geometry_to_json(geometry: Geometry) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": geometry.type,
        "spatialReference": {"wkid": geometry.wkid},
    }
    if isinstance(geometry, Point):
        body["x"] = geometry.x
        body["y"] = geometry.y
    elif isinstance(geometry, Polyline):
        body["paths"] = [[list(v) for v in path] for path in geometry.paths]
    elif isinstance(geometry, Polygon):
        body["rings"] = [[list(v) for v in ring] for ring in geometry.rings]
    else:
        raise TypeError(f"Unsupported geometry: {type(geometry).__name__}")
    return body


def geometry_from_json(body: Mapping[str, Any]) -> Geometry:
    """
    Rebuild a geometry from its structural form.

    Raises:
        UnparsableRecordError: If the type tag is unknown or coordinates are malformed
    """
    kind = body.get("type")
    reference = body.get("spatialReference")
    wkid = reference.get("wkid") if isinstance(reference, dict) else None
    try:
        if kind == "point":
            return Point(body["x"], body["y"], wkid)
        if kind == "polyline":
            return Polyline(body["paths"], wkid)
        if kind == "polygon":
            return Polygon(body["rings"], wkid)
    except (KeyError, TypeError, ValueError) as exc:
        raise UnparsableRecordError(f"malformed {kind} geometry: {exc}") from exc
    raise UnparsableRecordError(f"unknown geometry type {kind!r}")


def _upgrade_legacy(body: Mapping[str, Any]) -> dict[str, Any]:
    """Map a record written by the delimiter-joined format onto current field names."""
    geometry = body.get("geometry")
    layer = body.get("layer")
    if isinstance(geometry, str):
        try:
            geometry = json.loads(geometry)
        except ValueError as exc:
            raise UnparsableRecordError(f"legacy record has invalid geometry: {exc}") from exc
    return {
        "attributes": body.get("attributes"),
        "geometry": geometry,
        "layer": None if layer is None else str(layer),
        "op": body.get("enumValue"),
    }


class MutationCodec:
    def __init__(self, attribute_codec: Optional[AttributeCodec] = None) -> None:
        self.attribute_codec = attribute_codec or JsonAttributeCodec()

    def encode(self, feature: Feature, layer_id: str, operation: Operation) -> Mutation:
        """
        Build the durable form of an edit.

        A failing attribute codec does not abort encoding: the mutation is
        returned without attributes and the failure is logged.
        """
        operation = Operation(operation)
        attributes = None
        if feature.attributes is not None:
            try:
                attributes = self.attribute_codec.serialize(feature.attributes)
            except Exception as exc:
                logger.warning(
                    "Attributes of %s on layer %s dropped: %s",
                    operation.value,
                    layer_id,
                    exc,
                )
        return Mutation(
            operation=operation,
            layer_id=str(layer_id),
            geometry=feature.geometry,
            attributes=attributes,
        )

    def to_payload(self, mutation: Mutation) -> str:
        body = {
            "attributes": mutation.attributes,
            "geometry": geometry_to_json(mutation.geometry),
            "layer": mutation.layer_id,
            "op": mutation.operation.value,
        }
        return json.dumps(body, sort_keys=True, separators=(",", ":"))

    def encode_record(self, feature: Feature, layer_id: str, operation: Operation) -> str:
        return self.to_payload(self.encode(feature, layer_id, operation))

    def from_payload(self, payload: str) -> Mutation:
        """
        Parse a stored record.

        Raises:
            UnparsableRecordError: If the record is not a valid mutation
        """
        try:
            body = json.loads(payload)
        except ValueError as exc:
            raise UnparsableRecordError(f"record is not JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise UnparsableRecordError("record is not a JSON object")
        if "enumValue" in body:
            body = _upgrade_legacy(body)

        try:
            operation = Operation(body["op"])
            layer_id = body["layer"]
            geometry_body = body["geometry"]
        except (KeyError, TypeError, ValueError) as exc:
            raise UnparsableRecordError(f"record is missing or has an invalid field: {exc}") from exc
        if not isinstance(geometry_body, dict) or not isinstance(layer_id, str):
            raise UnparsableRecordError("record has an invalid layer or geometry")

        attributes = body.get("attributes")
        if attributes is not None and not isinstance(attributes, str):
            raise UnparsableRecordError("record attributes must be a string")

        return Mutation(
            operation=operation,
            layer_id=layer_id,
            geometry=geometry_from_json(geometry_body),
            attributes=attributes,
        )

    def attributes_of(self, mutation: Mutation) -> Optional[Mapping[str, Any]]:
        if mutation.attributes is None:
            return None
        try:
            return self.attribute_codec.deserialize(mutation.attributes)
        except Exception as exc:
            logger.warning(
                "Could not decode attributes of %s on layer %s: %s",
                mutation.operation.value,
                mutation.layer_id,
                exc,
            )
            return None

    def to_decoded(self, mutation: Mutation) -> DecodedMutation:
        return DecodedMutation(
            feature=Feature(mutation.geometry, self.attributes_of(mutation)),
            layer_id=mutation.layer_id,
            operation=mutation.operation,
        )

    def decode(self, payload: str) -> DecodedMutation:
        return self.to_decoded(self.from_payload(payload))

    def approximate_size(self, feature: Feature, layer_id: str, operation: Operation) -> int:
        """Bytes the edit will add to the pending queue blob."""
        return size_of(frame_record(self.encode_record(feature, layer_id, operation)))
