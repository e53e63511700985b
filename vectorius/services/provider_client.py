"""
Clients for the hosted backend: identity provider (auth admin API) and object storage
"""
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import requests

from vectorius.constants import PROVIDER_TIMEOUT
from vectorius.exceptions import FatalException

logger = logging.getLogger("main")


class ProviderAPIException(Exception):
    """Base exception for provider API errors"""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class _ProviderClient:
    """Shared session handling for the provider REST endpoints"""

    def __init__(self, base_url: str, api_key: str, timeout: int = PROVIDER_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "User-Agent": "Vectorius Server",
        })

    @classmethod
    def from_settings(cls, settings):
        """Build a client holding the privileged service credential"""
        provider = settings.get("provider", {})
        if not provider.get("url"):
            raise FatalException("Missing SUPABASE_URL environment variable")
        if not provider.get("service_role_key"):
            raise FatalException("Missing SUPABASE_SERVICE_ROLE_KEY environment variable")
        return cls(provider["url"], provider["service_role_key"])

    def _request(self, method, path, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        except requests.RequestException as e:
            logger.error(f"Provider request {method} {path} failed: {e}")
            raise ProviderAPIException(f"Provider request failed: {e}")
        if not response.ok:
            raise ProviderAPIException(
                f"Provider returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response


class IdentityClient(_ProviderClient):
    """Client for the provider's auth API"""

    def get_user_by_id(self, user_id: str) -> Optional[Dict]:
        """Admin lookup of a user, None when the provider does not know it"""
        try:
            response = self._request("GET", f"/auth/v1/admin/users/{quote(user_id, safe='')}")
        except ProviderAPIException as e:
            if e.status_code == 404:
                return None
            raise
        data = response.json()
        return data.get("user", data) if isinstance(data, dict) else None

    def generate_magic_link(self, email: str, redirect_to: str) -> Optional[str]:
        """Mint a one-time login link and return its action link"""
        response = self._request(
            "POST",
            "/auth/v1/admin/generate_link",
            json={"type": "magiclink", "email": email, "redirect_to": redirect_to},
        )
        data = response.json()
        if not isinstance(data, dict):
            return None
        return data.get("action_link") or data.get("properties", {}).get("action_link")

    def get_user_for_access_token(self, access_token: str) -> Optional[Dict]:
        """Resolve a session access token into its user, None when the token is rejected"""
        try:
            response = self._request(
                "GET",
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except ProviderAPIException as e:
            if e.status_code in (401, 403, 404):
                return None
            raise
        return response.json()


class StorageClient(_ProviderClient):
    """Client for the provider's object storage API"""

    def upload(self, bucket: str, path: str, content: bytes, content_type: str):
        self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(path)}",
            data=content,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )

    def remove(self, bucket: str, paths: List[str]):
        if not paths:
            return []
        response = self._request("DELETE", f"/storage/v1/object/{bucket}", json={"prefixes": list(paths)})
        return response.json()

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> Optional[str]:
        response = self._request(
            "POST",
            f"/storage/v1/object/sign/{bucket}/{quote(path)}",
            json={"expiresIn": expires_in},
        )
        signed = response.json().get("signedURL") or response.json().get("signedUrl")
        if not signed:
            return None
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1{signed}"
