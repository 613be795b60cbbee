"""State/store layer.

The store is the single source of truth for recorded check-ins.  Views
derive sorted and filtered projections from it without mutating it.
"""

from pywtrack.state.store import CheckInStore
from pywtrack.state.views import checked_in_message, format_time, history, map_points

__all__ = [
    "CheckInStore",
    "checked_in_message",
    "format_time",
    "history",
    "map_points",
]
