"""AI service client and credential cache."""

from repolens.llm.analysis import AnalysisClient
from repolens.llm.base import ChatProvider, Completion
from repolens.llm.credentials import CachedToken, ClientCredentialsTokenCache

__all__ = ["AnalysisClient", "CachedToken", "ChatProvider", "ClientCredentialsTokenCache", "Completion"]
