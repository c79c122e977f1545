"""One module per upstream service: API client, transform and ``*Sync`` pipeline."""
