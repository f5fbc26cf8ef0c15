"""Google OAuth session adapter - supplies the bearer token for the tasks API."""

import json
import logging
from pathlib import Path

from tasksync.config import TOKEN_FILE
from tasksync.errors import TaskSyncError
from tasksync.ports.session import User

logger = logging.getLogger(__name__)

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/tasks",
]


class AuthenticationError(TaskSyncError):
    """Raised when authentication fails."""

    pass


class GoogleSession:
    """
    Google OAuth session.

    Implements Session protocol. Loads token.json, refreshing it when
    expired. The signed-in email is stored next to the token at auth time.
    """

    def __init__(self, token_path: Path | str = TOKEN_FILE, client_secret_file: str = ""):
        self._token_path = Path(token_path).expanduser()
        self._account_path = self._token_path.with_name("account.json")
        self.client_secret_file = client_secret_file

    def _get_credentials(self):
        """Load credentials from token.json, refreshing if needed."""
        from google.auth.exceptions import GoogleAuthError
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials

        if not self._token_path.exists():
            logger.info(f"No token at {self._token_path} - run 'tasksync auth'")
            return None

        try:
            creds = Credentials.from_authorized_user_file(str(self._token_path), SCOPES)
        except (ValueError, OSError) as e:
            logger.warning(f"Unreadable token file {self._token_path}: {e}")
            return None

        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                self._save(creds.to_json())
            except GoogleAuthError as e:
                logger.warning(f"Failed to refresh token: {e}")
                return None

        return creds

    def _save(self, token_json: str) -> None:
        self._token_path.parent.mkdir(parents=True, exist_ok=True)
        self._token_path.write_text(token_json)
        self._token_path.chmod(0o600)

    def bearer_token(self) -> str | None:
        creds = self._get_credentials()
        if not creds or not creds.token:
            return None
        return creds.token

    def current_user(self) -> User | None:
        if self.bearer_token() is None:
            return None
        email = ""
        if self._account_path.exists():
            try:
                email = json.loads(self._account_path.read_text()).get("email", "")
            except json.JSONDecodeError as e:
                logger.warning(f"Unreadable account file {self._account_path}: {e}")
        return User(email=email)

    def authenticate(self) -> User:
        """Run the installed-app OAuth flow and store the token."""
        from google.auth import jwt
        from google_auth_oauthlib.flow import InstalledAppFlow

        if not self.client_secret_file:
            raise AuthenticationError(
                "Missing Google client secret. Set GOOGLE_CLIENT_SECRET_FILE in tasksync.conf"
            )

        secret_path = Path(self.client_secret_file).expanduser()
        if not secret_path.exists():
            raise AuthenticationError(f"Client secret file not found: {secret_path}")

        flow = InstalledAppFlow.from_client_secrets_file(str(secret_path), SCOPES)
        creds = flow.run_local_server(port=0)
        self._save(creds.to_json())

        email = ""
        id_token = getattr(creds, "id_token", None)
        if id_token:
            claims = jwt.decode(id_token, verify=False)
            email = claims.get("email", "")
        self._account_path.write_text(json.dumps({"email": email}))
        self._account_path.chmod(0o600)
        return User(email=email)

    def logout(self) -> None:
        """Forget the stored token and account."""
        for path in (self._token_path, self._account_path):
            if path.exists():
                path.unlink()
