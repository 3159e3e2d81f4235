"""Pure Strava domain logic: route geometry and quota tracking."""
