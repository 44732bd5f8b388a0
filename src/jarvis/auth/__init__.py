"""Credential storage and authenticated HTTP access for service tools."""

from jarvis.auth.credentials import CredentialStore, OAuthTokens
from jarvis.auth.http import AuthError, AuthenticatedClient, OAuthRefresher, ServiceError

SERVICES = ("spotify",)
