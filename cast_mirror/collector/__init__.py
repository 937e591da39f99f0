"""Feed ingestion: rate limiting, merging and scheduled sync cycles."""
