from ideaboard.api.client import IdeaBoardApiClient

__all__ = ["IdeaBoardApiClient"]
