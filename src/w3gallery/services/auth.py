"""Credential handling for w3gallery.

The gallery has no accounts of its own: logging in means handing the storage
adapter a key/secret pair that the bucket accepts for writes. The credential
lives only as long as the session that holds it.
"""

from dataclasses import dataclass
from typing import Any

from google.oauth2 import service_account

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
STORAGE_SCOPES = ["https://www.googleapis.com/auth/devstorage.read_write"]


@dataclass(frozen=True)
class Credential:
    """Key/secret pair plus the display name and icon shown for the signed-in user."""

    key: str
    secret: str
    display_name: str = ""
    icon_url: str | None = None

    def __repr__(self) -> str:
        return f"Credential(key={self.key!r}, display_name={self.display_name!r}, icon_url={self.icon_url!r})"

    def to_service_account_info(self) -> dict[str, Any]:
        """
        Service account info for Google Cloud Storage.

        The key is the service account e-mail and the secret its PEM private key.
        """
        return {
            "type": "service_account",
            "client_email": self.key,
            "private_key": self.secret.replace("\\n", "\n"),
            "token_uri": GOOGLE_TOKEN_URI,
        }


def build_service_account_credentials(credential: Credential) -> service_account.Credentials:
    """
    Build google-auth credentials from a gallery credential.

    Raises:
        ValueError: If the secret is not a usable private key
    """
    return service_account.Credentials.from_service_account_info(
        credential.to_service_account_info(),
        scopes=STORAGE_SCOPES,
    )
