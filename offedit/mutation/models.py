from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Sequence, Union


class Operation(str, Enum):
    CREATE = "add"
    UPDATE = "update"
    DELETE = "delete"


Coordinate = tuple[float, ...]


def _coords(values: Sequence[Sequence[float]]) -> tuple[Coordinate, ...]:
    return tuple(tuple(float(c) for c in vertex) for vertex in values)


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    wkid: Optional[int] = None
    type: ClassVar[str] = "point"

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))


@dataclass(frozen=True)
class Polyline:
    paths: tuple[tuple[Coordinate, ...], ...]
    wkid: Optional[int] = None
    type: ClassVar[str] = "polyline"

    def __post_init__(self) -> None:
        object.__setattr__(self, "paths", tuple(_coords(path) for path in self.paths))


@dataclass(frozen=True)
class Polygon:
    rings: tuple[tuple[Coordinate, ...], ...]
    wkid: Optional[int] = None
    type: ClassVar[str] = "polygon"

    def __post_init__(self) -> None:
        object.__setattr__(self, "rings", tuple(_coords(ring) for ring in self.rings))


Geometry = Union[Point, Polyline, Polygon]


@dataclass(frozen=True)
class Feature:
    """A spatial shape plus its attribute mapping, as the feature backend sees it."""
    geometry: Geometry
    attributes: Optional[Mapping[str, Any]] = field(default=None, hash=False)


@dataclass(frozen=True)
class Mutation:
    """
    One pending feature edit in its durable form.

    ``attributes`` is the opaque string produced by the attribute codec.
    """
    operation: Operation
    layer_id: str
    geometry: Geometry
    attributes: Optional[str] = None


@dataclass(frozen=True)
class DecodedMutation:
    feature: Feature
    layer_id: str
    operation: Operation
