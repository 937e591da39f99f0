"""On-demand services: voting and the ranked read view."""
