"""HTTP routers for the feed service."""
