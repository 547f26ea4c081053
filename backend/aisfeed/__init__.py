"""AIS live feed ingest: stream client and regional subscription scheduler."""

__version__ = "0.1.0"
