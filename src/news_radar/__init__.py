"""Location-aware news retrieval with intent routing and trending rankings."""

__all__ = ["config", "models", "router", "trending", "intent"]
