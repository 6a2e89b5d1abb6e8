"""API routes for the snipsync server."""
