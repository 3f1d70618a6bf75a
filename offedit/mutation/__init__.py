from __future__ import annotations

from .codec import AttributeCodec, JsonAttributeCodec, MutationCodec
from .models import (
    DecodedMutation,
    Feature,
    Geometry,
    Mutation,
    Operation,
    Point,
    Polygon,
    Polyline,
)

__all__ = [
    "AttributeCodec",
    "JsonAttributeCodec",
    "MutationCodec",
    "DecodedMutation",
    "Feature",
    "Geometry",
    "Mutation",
    "Operation",
    "Point",
    "Polygon",
    "Polyline",
]
