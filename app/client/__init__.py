from app.client.api_client import SessionExpiredError, StorySparksClient

__all__ = ["SessionExpiredError", "StorySparksClient"]
