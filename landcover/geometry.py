"""Labeled training geometries."""

from dataclasses import dataclass, field
from typing import Any, Hashable, List, Mapping, Optional, Sequence

from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from landcover.errors import InvalidInput


@dataclass(frozen=True)
class LabeledGeometry:
    """A point or polygon tagged with properties (one of them the class label)."""
    geometry: BaseGeometry
    properties: Mapping[str, Any] = field(default_factory=dict)
    geometry_id: Optional[Hashable] = None

    def label(self, label_field: str) -> Any:
        return self.properties.get(label_field)


def from_features(features: Sequence[Mapping[str, Any]]) -> List[LabeledGeometry]:
    """
    Build labeled geometries from GeoJSON-like feature dicts.

    Each feature needs a "geometry" member; "properties" and "id" are optional.
    Features without an id are numbered by their position.
    """
    out = []
    for i, feature in enumerate(features):
        if feature.get("geometry") is None:
            raise InvalidInput(f"Feature {i} has no geometry")
        out.append(LabeledGeometry(
            geometry=shape(feature["geometry"]),
            properties=dict(feature.get("properties") or {}),
            geometry_id=feature.get("id", i),
        ))
    return out


def merge(*collections: Sequence[LabeledGeometry]) -> List[LabeledGeometry]:
    """
    Concatenate several geometry collections (e.g. one per class).

    Geometries are renumbered by their position in the merged list when
    their ids would collide.
    """
    merged = [g for collection in collections for g in collection]
    ids = [g.geometry_id for g in merged]
    if None in ids or len(set(ids)) != len(ids):
        merged = [
            LabeledGeometry(g.geometry, g.properties, i) for i, g in enumerate(merged)
        ]
    return merged
