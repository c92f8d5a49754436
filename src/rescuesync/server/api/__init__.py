"""API routes for the rescuesync server."""
