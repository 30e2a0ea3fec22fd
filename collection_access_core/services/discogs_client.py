"""
Signed HTTP client for the remote collection API.

Every request is signed with OAuth 1.0a (HMAC-SHA1) and bounded by the
configured timeout. Transport failures, timeouts, non-2xx statuses and
unparseable payloads all surface as ``UpstreamError``; nothing is retried
here.
"""

from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, quote

import requests
from pydantic import SecretStr
from pydantic import ValidationError as PydanticValidationError
from requests_oauthlib import OAuth1

from ..config import DiscogsConfig, get_config
from ..constants import Discogs
from ..exceptions import ErrorCode, ServiceError, UpstreamError
from ..schemas.collection_schemas import RemoteCollectionResponse
from ..schemas.connection_schemas import CredentialPair, RemoteIdentity, RequestToken
from ..utils.logger import get_logger


class DiscogsClient:
    """Thin transport over the remote collection API."""

    def __init__(
        self,
        config: Optional[DiscogsConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or get_config().discogs
        self.session = session or requests.Session()
        self.logger = get_logger()

    def _get_headers(self) -> Dict[str, str]:
        return {"User-Agent": self.config.user_agent, "Accept": "application/json"}

    def _oauth(
        self,
        resource_owner_key: Optional[str] = None,
        resource_owner_secret: Optional[str] = None,
        **kwargs: Any,
    ) -> OAuth1:
        if not self.config.consumer_key or not self.config.consumer_secret:
            raise ServiceError(
                "Remote API consumer key/secret are not configured",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="discogs_client.sign",
            )
        return OAuth1(
            self.config.consumer_key,
            client_secret=self.config.consumer_secret,
            resource_owner_key=resource_owner_key,
            resource_owner_secret=resource_owner_secret,
            **kwargs,
        )

    def _signed_with(self, credentials: CredentialPair) -> OAuth1:
        return self._oauth(
            resource_owner_key=credentials.access_token.get_secret_value(),
            resource_owner_secret=credentials.access_token_secret.get_secret_value(),
        )

    def _request(
        self,
        method: str,
        path: str,
        auth: OAuth1,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = f"{self.config.base_url.rstrip('/')}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                auth=auth,
                headers=self._get_headers(),
                timeout=self.config.timeout_seconds,
            )
        except requests.Timeout as e:
            raise UpstreamError(
                "Remote collection API timed out",
                cause=e,
                path=path,
                timeout_seconds=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise UpstreamError("Remote collection API is unreachable", cause=e, path=path)

        if not 200 <= response.status_code < 300:
            raise UpstreamError(
                f"Remote collection API returned HTTP {response.status_code}",
                upstream_status=response.status_code,
                path=path,
                reason=getattr(response, "reason", None),
            )

        self.logger.debug(
            f"{method} {path} -> {response.status_code}", extra={"params": params or {}}
        )
        return response

    @staticmethod
    def _json(response: requests.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                "Remote collection API returned a malformed payload",
                upstream_status=response.status_code,
                cause=e,
                path=path,
            )

    # ==================== OAUTH HANDSHAKE ====================

    def get_request_token(self, callback_url: str) -> RequestToken:
        """First leg: obtain temporary credentials and the authorize URL."""
        path = Discogs.REQUEST_TOKEN_PATH
        response = self._request("POST", path, self._oauth(callback_uri=callback_url))
        values = dict(parse_qsl(response.text))

        if "oauth_token" not in values or "oauth_token_secret" not in values:
            raise UpstreamError(
                "Remote collection API returned no request token",
                upstream_status=response.status_code,
                path=path,
            )

        return RequestToken(
            token=values["oauth_token"],
            secret=SecretStr(values["oauth_token_secret"]),
            authorize_url=(
                f"{self.config.web_base_url.rstrip('/')}/oauth/authorize"
                f"?oauth_token={quote(values['oauth_token'], safe='')}"
            ),
        )

    def get_access_token(
        self, request_token: str, request_secret: str, verifier: str
    ) -> CredentialPair:
        """Final leg: exchange the authorized request token for an access token pair."""
        path = Discogs.ACCESS_TOKEN_PATH
        auth = self._oauth(
            resource_owner_key=request_token,
            resource_owner_secret=request_secret,
            verifier=verifier,
        )
        response = self._request("POST", path, auth)
        values = dict(parse_qsl(response.text))

        try:
            return CredentialPair(
                access_token=values["oauth_token"],
                access_token_secret=values["oauth_token_secret"],
            )
        except (KeyError, PydanticValidationError) as e:
            raise UpstreamError(
                "Remote collection API returned no access token",
                upstream_status=response.status_code,
                cause=e,
                path=path,
            )

    def get_identity(self, credentials: CredentialPair) -> RemoteIdentity:
        path = Discogs.IDENTITY_PATH
        response = self._request("GET", path, self._signed_with(credentials))
        try:
            return RemoteIdentity.model_validate(self._json(response, path))
        except PydanticValidationError as e:
            raise UpstreamError(
                "Remote identity payload is malformed",
                upstream_status=response.status_code,
                cause=e,
                path=path,
            )

    # ==================== COLLECTION READS ====================

    def get_collection_page(
        self, credentials: CredentialPair, username: str, page: int, per_page: int
    ) -> RemoteCollectionResponse:
        """Fetch one page of a user's collection (all folders)."""
        path = Discogs.COLLECTION_PATH.format(username=quote(username, safe=""))
        response = self._request(
            "GET",
            path,
            self._signed_with(credentials),
            params={"page": page, "per_page": per_page},
        )
        try:
            return RemoteCollectionResponse.model_validate(self._json(response, path))
        except PydanticValidationError as e:
            raise UpstreamError(
                "Remote collection payload is malformed",
                upstream_status=response.status_code,
                cause=e,
                path=path,
            )

    def get_release(self, credentials: CredentialPair, release_id: Any) -> Dict[str, Any]:
        """Fetch the full detail object for one release."""
        path = Discogs.RELEASE_PATH.format(release_id=quote(str(release_id), safe=""))
        payload = self._json(self._request("GET", path, self._signed_with(credentials)), path)
        if not isinstance(payload, dict) or "id" not in payload:
            raise UpstreamError("Remote release payload is malformed", path=path)
        return payload
