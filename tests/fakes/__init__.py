from .strava import FakeActivitySource

__all__ = ["FakeActivitySource"]
