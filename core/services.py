"""
Google API service construction from a stored authorized-user token.
"""
import logging
import os

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/spreadsheets",
]


class GoogleAuthenticationError(Exception):
    """Raised when no usable Google credentials are available."""

    pass


def load_credentials(token_file: str) -> Credentials:
    if not os.path.exists(token_file):
        raise GoogleAuthenticationError(
            f"Google token file '{token_file}' not found. Set GOOGLE_TOKEN_FILE to an authorized-user token."
        )
    return Credentials.from_authorized_user_file(token_file, SCOPES)


def build_docs_service(credentials: Credentials):
    return build("docs", "v1", credentials=credentials, cache_discovery=False)


def build_sheets_service(credentials: Credentials):
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)
