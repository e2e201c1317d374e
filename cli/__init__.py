"""
Command-line interface for the tidal ingestion backend.

Commands:
    init-db: Create the database tables
    fetch-stations: Refresh the station catalog
    fetch-station: Refresh a single station
    fetch-events: Fetch tidal events for a batch of stations
    serve: Run the read API

Usage:
    tidal-ingest fetch-stations
    tidal-ingest fetch-events --duration 3 --station 0001 --station 0113A
"""

__all__ = ["app"]
