# Import every model so string-based relationships resolve on first use
from models.User import User, UserType
from models.Family import Family, FamilyStatus
from models.Trip import Trip, trip_admins
from models.TripAttendance import TripAttendance
from models.GearItem import GearItem
from models.GearAssignment import GearAssignment
from models.ActivityLog import ActivityLog

__all__ = [
    "User",
    "UserType",
    "Family",
    "FamilyStatus",
    "Trip",
    "trip_admins",
    "TripAttendance",
    "GearItem",
    "GearAssignment",
    "ActivityLog",
]
