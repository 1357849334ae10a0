"""Dashboard API: JSON routes and a WebSocket hub over the market monitor."""

from dealer.dashboard.app import create_dashboard_app
from dealer.dashboard.routes.ws import DashboardHub

__all__ = ["DashboardHub", "create_dashboard_app"]
