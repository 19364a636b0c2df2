"""
Great-circle distance helpers.

Distances shown to users are in miles and rounded to one decimal place.
The proximity matcher works in kilometres through haversine_distance.
"""
import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

EARTH_RADIUS_MILES = 3959.0
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    @classmethod
    def from_value(cls, value: Any) -> Optional["Coordinate"]:
        """
        Build a Coordinate from the shapes coordinates arrive in.

        Accepts a Coordinate, a mapping with "lat"/"lng" keys, a (lat, lng)
        pair, or None.
        """
        if value is None or isinstance(value, Coordinate):
            return value
        if isinstance(value, dict):
            lat, lng = value.get("lat"), value.get("lng")
            if lat is None or lng is None:
                return None
            return cls(float(lat), float(lng))
        lat, lng = value
        return cls(float(lat), float(lng))


def haversine_distance(a: Coordinate, b: Coordinate, radius: float = EARTH_RADIUS_MILES) -> float:
    """Unrounded great-circle distance between two points, in the unit of radius."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return radius * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def calculate_distance(a: Any, b: Any) -> Optional[float]:
    """
    Distance in miles between two coordinates, rounded to one decimal.

    Args:
        a: Coordinate-like value or None
        b: Coordinate-like value or None

    Returns:
        Miles, or None if either coordinate is missing
    """
    a = Coordinate.from_value(a)
    b = Coordinate.from_value(b)
    if a is None or b is None:
        return None
    return round(haversine_distance(a, b, EARTH_RADIUS_MILES), 1)


def format_distance(distance: Optional[float]) -> str:
    if distance is None:
        return "Distance unknown"
    if distance < 1:
        return "Less than 1 mile away"
    if distance == 1:
        return "1 mile away"
    if distance == int(distance):
        distance = int(distance)
    return f"{distance} miles away"


@dataclass(frozen=True)
class RankedJob:
    """A job paired with its distance from the search origin. Other attributes read through to the job."""
    job: Any
    distance: Optional[float]

    def __getattr__(self, name):
        if name == "job":
            raise AttributeError(name)
        return getattr(self.job, name)


def _coords_of(job: Any) -> Any:
    if isinstance(job, dict):
        return job.get("coords")
    return getattr(job, "coords", None)


def _with_distance(job: Any, distance: Optional[float]) -> Any:
    if isinstance(job, dict):
        return {**job, "distance": distance}
    if isinstance(job, RankedJob):
        job = job.job
    return RankedJob(job, distance)


def _distance_of(job: Any) -> Optional[float]:
    return job["distance"] if isinstance(job, dict) else job.distance


def sort_jobs_by_distance(jobs: Iterable[Any], origin: Any) -> List[Any]:
    """
    Return the jobs with their distance from origin, nearest first.

    Dict jobs come back as copies with a "distance" key; other objects come
    back wrapped in RankedJob. The inputs are never modified. Jobs whose
    distance is unknown keep their relative order after every job with a
    known distance.
    """
    annotated = [_with_distance(job, calculate_distance(origin, _coords_of(job))) for job in jobs]

    # sorted() is stable, so equal keys keep input order
    return sorted(annotated, key=lambda job: (_distance_of(job) is None, _distance_of(job) or 0.0))
