"""
Grid geometry: evenly spaced map points around a business location.

Distances use the haversine model with an Earth radius of 3958.8 miles.
Coordinates are rounded to 7 decimal places.
"""
import math
from dataclasses import dataclass
from typing import List

EARTH_RADIUS_MILES = 3958.8
COORDINATE_PRECISION = 7
DEFAULT_ZOOM = 14

MIN_GRID_SIZE = 1
MAX_GRID_SIZE = 15
MAX_RADIUS_MILES = 50

NORTH, EAST, SOUTH, WEST = 0, 90, 180, 270


@dataclass(frozen=True)
class GridPoint:
    row: int
    col: int
    lat: float
    lng: float

    @property
    def coordinate(self) -> str:
        return format_coordinate(self.lat, self.lng)


def calculate_destination(lat: float, lng: float, bearing: float, distance_miles: float):
    """Point reached from (lat, lng) after `distance_miles` along `bearing` degrees."""
    lat1 = math.radians(lat)
    lng1 = math.radians(lng)
    theta = math.radians(bearing)
    delta = distance_miles / EARTH_RADIUS_MILES

    lat2 = math.asin(
        math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(theta)
    )
    lng2 = lng1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2),
    )
    return math.degrees(lat2), math.degrees(lng2)


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def validate_grid(grid_size: int, radius_miles: float):
    if not MIN_GRID_SIZE <= grid_size <= MAX_GRID_SIZE:
        raise ValueError(f"Grid size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}")
    if not 0 < radius_miles <= MAX_RADIUS_MILES:
        raise ValueError(f"Radius must be greater than 0 and at most {MAX_RADIUS_MILES} miles")


def generate_grid_points(center_lat: float, center_lng: float, grid_size: int,
                         radius_miles: float) -> List[GridPoint]:
    """
    `grid_size` x `grid_size` points covering a square `2 * radius_miles`
    wide, in row-major order from the north-west corner. A 1x1 grid is the
    center itself.
    """
    center_lat = float(center_lat)
    center_lng = float(center_lng)
    radius_miles = float(radius_miles)
    validate_grid(grid_size, radius_miles)

    if grid_size == 1:
        return [GridPoint(0, 0, round(center_lat, COORDINATE_PRECISION), round(center_lng, COORDINATE_PRECISION))]

    spacing = radius_miles * 2 / (grid_size - 1)
    north_lat, north_lng = calculate_destination(center_lat, center_lng, NORTH, radius_miles)
    corner_lat, corner_lng = calculate_destination(north_lat, north_lng, WEST, radius_miles)

    points = []
    for row in range(grid_size):
        row_lat, row_lng = calculate_destination(corner_lat, corner_lng, SOUTH, row * spacing)
        for col in range(grid_size):
            lat, lng = calculate_destination(row_lat, row_lng, EAST, col * spacing)
            points.append(GridPoint(
                row=row,
                col=col,
                lat=round(lat, COORDINATE_PRECISION),
                lng=round(lng, COORDINATE_PRECISION),
            ))
    return points


def grid_center(grid_size: int):
    center = grid_size // 2
    return center, center


def format_coordinate(lat: float, lng: float, zoom: int = DEFAULT_ZOOM) -> str:
    """`"lat,lng,zoom"` as the maps SERP endpoint expects it."""
    return f"{float(lat):.{COORDINATE_PRECISION}f},{float(lng):.{COORDINATE_PRECISION}f},{zoom}"
