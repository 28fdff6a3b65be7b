"""Domain layer - library models, remote catalog client and playback session."""
