from . import trips
from . import gear
from . import families

__all__ = [
    "trips",
    "gear",
    "families",
]
