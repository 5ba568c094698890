"""Web-Mercator tile math."""

import math

from weather_hub.services.errors import InvalidURLError

MAX_MERCATOR_LATITUDE = 85.05


def tile_for(lat: float, lon: float, zoom: int) -> tuple[int, int]:
    """Return the (x, y) index of the tile containing a coordinate.

    Latitude is clamped to the Mercator limit before projection and the
    result is clamped to the ``2**zoom`` grid, so antimeridian and polar
    inputs still land on a valid tile.

    Raises:
        InvalidURLError: If a coordinate is NaN or infinite
    """
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidURLError(f"Cannot place a tile at ({lat}, {lon})")

    n = 2**zoom
    lat = min(max(lat, -MAX_MERCATOR_LATITUDE), MAX_MERCATOR_LATITUDE)
    lat_rad = math.radians(lat)

    x = math.floor((lon + 180.0) / 360.0 * n)
    mercator = math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad))
    y = math.floor((1.0 - mercator / math.pi) / 2.0 * n)

    return min(max(x, 0), n - 1), min(max(y, 0), n - 1)
