"""HTTP API for the document harvester."""
