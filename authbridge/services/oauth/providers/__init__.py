"""OAuth providers module."""
from .apple import AppleOAuthProvider
from .base import OAuthProvider, callback_parameters_from_mapping
from .discord import DiscordOAuthProvider
from .facebook import FacebookOAuthProvider
from .github import GitHubOAuthProvider
from .google import GoogleOAuthProvider
from .kakao import KakaoOAuthProvider
from .linkedin import LinkedInOAuthProvider
from .microsoft import MicrosoftOAuthProvider
from .naver import NaverOAuthProvider
from .x import XOAuthProvider

__all__ = [
    "AppleOAuthProvider",
    "DiscordOAuthProvider",
    "FacebookOAuthProvider",
    "GitHubOAuthProvider",
    "GoogleOAuthProvider",
    "KakaoOAuthProvider",
    "LinkedInOAuthProvider",
    "MicrosoftOAuthProvider",
    "NaverOAuthProvider",
    "OAuthProvider",
    "XOAuthProvider",
    "callback_parameters_from_mapping",
]
