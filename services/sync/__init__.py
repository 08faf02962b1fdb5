"""Exchange trade synchronization jobs."""
