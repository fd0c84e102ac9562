"""Rules for query and loading patterns that hurt runtime performance."""
