from .base import Base
from .business import Business
from .gbp_snapshot import GbpSnapshot
from .dashboard_view import dashboard_row1_view

__all__ = [
    "Base",
    "Business",
    "GbpSnapshot",
    "dashboard_row1_view",
]
