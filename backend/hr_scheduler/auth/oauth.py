from google_auth_oauthlib.flow import Flow
from google.oauth2.credentials import Credentials
from google.auth.transport.requests import Request
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.discovery import build
from typing import Optional, Tuple
from datetime import datetime
import json
from pathlib import Path

from ..errors import ExternalGatewayError
from ..utils.config import settings
from ..utils.logger import logger

class CredentialStore:
    """Per-account Google OAuth tokens kept as JSON files in `token_dir`."""

    SCOPES = [
        'https://www.googleapis.com/auth/calendar',
        'https://www.googleapis.com/auth/calendar.events',
        'https://www.googleapis.com/auth/userinfo.email',
        'openid'
    ]

    def __init__(self, token_dir: str = settings.token_dir, redirect_uri: str = settings.oauth_redirect_uri):
        self.token_dir = Path(token_dir)
        self.redirect_uri = redirect_uri
        self.token_uri = "https://oauth2.googleapis.com/token"

        self.client_config = {
            "web": {
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": self.token_uri,
                "redirect_uris": [self.redirect_uri]
            }
        }

    def _flow(self, state: Optional[str] = None) -> Flow:
        return Flow.from_client_config(
            self.client_config,
            scopes=self.SCOPES,
            redirect_uri=self.redirect_uri,
            state=state
        )

    def get_authorization_url(self) -> Tuple[str, str]:
        authorization_url, state = self._flow().authorization_url(
            access_type='offline',
            include_granted_scopes='true',
            prompt='consent'
        )

        logger.info(f"Generated authorization URL with state: {state}")
        return authorization_url, state

    def exchange_code(self, code: str, state: str) -> Tuple[str, Credentials]:
        """
        Finish the consent flow and store the tokens.

        Returns:
            (account_id, credentials); the account id is the Google account email
        """
        flow = self._flow(state)
        flow.fetch_token(code=code)
        credentials = flow.credentials

        account_id = self.get_account_email(credentials)
        self.save_credentials(account_id, credentials)

        logger.info(f"Connected calendar for account: {account_id}")
        return account_id, credentials

    def get_account_email(self, credentials: Credentials) -> str:
        service = build('oauth2', 'v2', credentials=credentials, cache_discovery=False)
        user_info = service.userinfo().get().execute()
        return user_info['email']

    def _token_path(self, account_id: str) -> Path:
        safe_id = "".join(c if c.isalnum() or c in "-_.@" else "_" for c in account_id)
        return self.token_dir / f"{safe_id}.json"

    def save_credentials(self, account_id: str, credentials: Credentials) -> None:
        self.token_dir.mkdir(parents=True, exist_ok=True)
        token_path = self._token_path(account_id)

        token_data = {
            'token': credentials.token,
            'refresh_token': credentials.refresh_token,
            'token_uri': credentials.token_uri,
            'client_id': credentials.client_id,
            'client_secret': credentials.client_secret,
            'scopes': credentials.scopes,
            # naive UTC, as google-auth keeps it
            'expiry': credentials.expiry.isoformat() if credentials.expiry else None
        }

        with open(token_path, 'w') as f:
            json.dump(token_data, f)

        logger.info(f"Saved credentials for account: {account_id}")

    def load_credentials(self, account_id: str) -> Optional[Credentials]:
        token_path = self._token_path(account_id)

        if not token_path.exists():
            logger.warning(f"No credentials found for account: {account_id}")
            return None

        with open(token_path, 'r') as f:
            token_data = json.load(f)

        credentials = Credentials(
            token=token_data.get('token'),
            refresh_token=token_data.get('refresh_token'),
            token_uri=token_data.get('token_uri') or self.token_uri,
            client_id=token_data.get('client_id') or settings.google_client_id,
            client_secret=token_data.get('client_secret') or settings.google_client_secret,
            scopes=token_data.get('scopes') or self.SCOPES,
            expiry=datetime.fromisoformat(token_data['expiry']) if token_data.get('expiry') else None
        )

        # Refresh if expired
        if credentials.expired and credentials.refresh_token:
            logger.info(f"Refreshing expired credentials for account: {account_id}")
            try:
                credentials.refresh(Request())
            except RefreshError as e:
                raise ExternalGatewayError(f"Could not refresh calendar credentials: {e}", retryable=False) from e
            except TransportError as e:
                raise ExternalGatewayError(f"Token endpoint unreachable: {e}", retryable=True) from e
            self.save_credentials(account_id, credentials)

        return credentials

    def revoke_credentials(self, account_id: str) -> bool:
        token_path = self._token_path(account_id)

        if token_path.exists():
            token_path.unlink()
            logger.info(f"Revoked credentials for account: {account_id}")
            return True

        return False

credential_store = CredentialStore()
