"""Strava activity cache service."""
