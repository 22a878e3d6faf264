"""Bearer token acquisition for the Azure management plane.

This module loads credentials from environment variables using
python-dotenv and turns them into a bearer token. The HTTP client only
needs a zero-argument callable returning a token string; the strategies
below are tried in order until one succeeds.
"""

import json
import logging
import os
import shutil
import subprocess
from typing import NamedTuple, Optional

import requests
from dotenv import load_dotenv

from .errors import InvalidCredentialsError

logger = logging.getLogger(__name__)

MANAGEMENT_SCOPE = "https://management.azure.com/.default"
MANAGEMENT_RESOURCE = "https://management.azure.com/"
LOGIN_ENDPOINT = "https://login.microsoftonline.com"


class ServicePrincipal(NamedTuple):
    """Service principal (app registration) credentials."""
    tenant_id: str
    client_id: str
    client_secret: str


class Authenticator:
    """Acquires bearer tokens for the management API.

    Tokens are never cached or logged here; caching belongs to the HTTP
    client so it can be invalidated on 401.

    Strategies, in order:
        1. AZURE_ACCESS_TOKEN: a preconfigured token
        2. Service principal: AZURE_TENANT_ID, AZURE_CLIENT_ID,
           AZURE_CLIENT_SECRET (or constructor arguments)
        3. Azure CLI: `az account get-access-token` for a logged-in user

    Raises:
        InvalidCredentialsError: If no strategy yields a token

    Example:
        >>> auth = Authenticator()
        >>> client = ManagementHttpClient(config, auth.get_bearer_token)
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ):
        load_dotenv()
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret

    def get_service_principal(self) -> Optional[ServicePrincipal]:
        """Return service principal credentials if all three parts are set."""
        tenant_id = self._tenant_id or os.getenv('AZURE_TENANT_ID')
        client_id = self._client_id or os.getenv('AZURE_CLIENT_ID')
        client_secret = self._client_secret or os.getenv('AZURE_CLIENT_SECRET')

        if tenant_id and client_id and client_secret:
            return ServicePrincipal(tenant_id, client_id, client_secret)
        return None

    def get_bearer_token(self) -> str:
        """Return a bearer token for the management API.

        Returns:
            str: The raw access token (without the "Bearer " prefix)

        Raises:
            InvalidCredentialsError: If every strategy fails
        """
        token = os.getenv('AZURE_ACCESS_TOKEN')
        if token:
            logger.debug("Using preconfigured access token")
            return token

        principal = self.get_service_principal()
        if principal:
            logger.debug("Using service principal authentication")
            return self._request_client_credentials_token(principal)

        if shutil.which('az'):
            logger.debug("Using Azure CLI authentication")
            return self._request_cli_token()

        raise InvalidCredentialsError(
            "No Azure credentials available. Set AZURE_ACCESS_TOKEN, a service "
            "principal (AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET), "
            "or run 'az login'."
        )

    def _request_client_credentials_token(self, principal: ServicePrincipal) -> str:
        url = f"{LOGIN_ENDPOINT}/{principal.tenant_id}/oauth2/v2.0/token"
        try:
            response = requests.post(
                url,
                data={
                    'grant_type': 'client_credentials',
                    'client_id': principal.client_id,
                    'client_secret': principal.client_secret,
                    'scope': MANAGEMENT_SCOPE,
                },
                timeout=30,
            )
            response.raise_for_status()
            return response.json()['access_token']
        except (requests.RequestException, KeyError, ValueError) as e:
            raise InvalidCredentialsError(
                f"Failed to get access token for client {principal.client_id}: {type(e).__name__}"
            ) from e

    def _request_cli_token(self) -> str:
        try:
            result = subprocess.run(
                [
                    'az', 'account', 'get-access-token',
                    '--resource', MANAGEMENT_RESOURCE,
                    '--output', 'json',
                ],
                capture_output=True,
                text=True,
                check=True,
                timeout=60,
            )
            return json.loads(result.stdout)['accessToken']
        except (subprocess.SubprocessError, OSError, KeyError, ValueError) as e:
            raise InvalidCredentialsError(
                "Failed to get access token from Azure CLI. Run 'az login' first."
            ) from e
