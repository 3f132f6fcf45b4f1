"""Real-time lobby and game-session coordination server."""
