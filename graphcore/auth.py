"""MSAL device-code authentication with a persistent token cache."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .cli_errors import AuthError, ConfigError
from .constants import GRAPH_API_SCOPES, LOGIN_AUTHORITY_URL, default_token_cache_path

LOG = logging.getLogger(__name__)

NOT_AUTHENTICATED = "not authenticated. Please run 'm365 login' first"


def _msal():
    import msal

    return msal


class Authenticator:
    """Acquire Graph access tokens for a public client application."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        scopes: Optional[List[str]] = None,
        cache_path: Optional[str] = None,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.scopes = list(scopes or GRAPH_API_SCOPES)
        self.cache_path = Path(cache_path or default_token_cache_path())
        self._cache = None
        self._app = None

    @property
    def authority(self) -> str:
        return f"{LOGIN_AUTHORITY_URL}/{self.tenant_id}"

    def _load_app(self):
        if self._app is not None:
            return self._app
        if not self.client_id or not self.tenant_id:
            raise ConfigError(
                "client ID and tenant ID must be configured",
                hint="Use 'm365 config set --tenant-id <id> --client-id <id>'",
            )
        msal = _msal()
        cache = msal.SerializableTokenCache()
        if self.cache_path.exists():
            try:
                cache.deserialize(self.cache_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                LOG.warning("Could not load token cache (%s), starting fresh", type(exc).__name__)
        self._cache = cache
        self._app = msal.PublicClientApplication(
            self.client_id, authority=self.authority, token_cache=cache
        )
        return self._app

    def _save_cache(self) -> None:
        if self._cache is None or not self._cache.has_state_changed:
            return
        self.cache_path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        self.cache_path.write_text(self._cache.serialize(), encoding="utf-8")
        os.chmod(self.cache_path, 0o600)

    def login_with_device_code(self, printer: Callable[[str], Any] = print) -> Dict[str, Any]:
        app = self._load_app()
        flow = app.initiate_device_flow(scopes=self.scopes)
        if "user_code" not in flow:
            detail = flow.get("error_description") or flow.get("error") or flow
            raise AuthError(f"Failed to start device flow: {detail}")
        printer(
            flow.get("message")
            or f"To sign in, visit {flow.get('verification_uri')} and enter code: {flow['user_code']}"
        )
        result = app.acquire_token_by_device_flow(flow)
        if "access_token" not in result:
            detail = result.get("error_description") or result.get("error")
            raise AuthError(f"Device flow failed: {detail}")
        self._save_cache()
        return result

    def _acquire_silent(self) -> Optional[Dict[str, Any]]:
        app = self._load_app()
        accounts = app.get_accounts()
        if not accounts:
            return None
        result = app.acquire_token_silent(self.scopes, account=accounts[0])
        self._save_cache()
        if result and "access_token" in result:
            return result
        return None

    def is_authenticated(self) -> bool:
        return self._acquire_silent() is not None

    def get_access_token(self) -> str:
        result = self._acquire_silent()
        if result is None:
            raise AuthError(NOT_AUTHENTICATED)
        return result["access_token"]

    def logout(self) -> None:
        try:
            self.cache_path.unlink()
        except FileNotFoundError:
            pass
        self._cache = None
        self._app = None
