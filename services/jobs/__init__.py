"""Background job progress tracking."""
