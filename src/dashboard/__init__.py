from src.dashboard.views import (
    ChartPoint,
    ChartView,
    Panel,
    build_chart_view,
    build_panel,
    build_backtesting_panel,
    build_dashboard_summary,
)
from src.dashboard.web import DashboardRuntime, run_web_dashboard

__all__ = [
    "ChartPoint",
    "ChartView",
    "Panel",
    "build_chart_view",
    "build_panel",
    "build_backtesting_panel",
    "build_dashboard_summary",
    "DashboardRuntime",
    "run_web_dashboard",
]
