"""
Sluice: the extraction and normalization layer of an ETL pipeline engine.

Retrieves raw data from paginated APIs, the local filesystem and remote
files, and parses it into flat record batches for downstream stages.
"""

__version__ = "0.1.0"
