"""Audio capture, file playback and the tuner service."""
