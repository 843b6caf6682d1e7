from .base import Base
from .oauth import OAuthClientRecord, OAuthCode, OAuthToken

__all__ = ["Base", "OAuthClientRecord", "OAuthCode", "OAuthToken"]
