"""Read-only video catalog (id, duration and playback details)."""
