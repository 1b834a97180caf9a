"""Source adapters feeding the sync pipelines."""
