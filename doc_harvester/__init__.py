"""Bulk document harvester: fetch remote documents and pack them into one archive."""
