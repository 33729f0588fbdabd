"""Supabase Auth lookup of bearer tokens."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import AuthApiError, AuthError, Client

from fooptra.domain.errors import RemoteOperationError
from fooptra.services.profiles import IdentityProvider

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Resolves access tokens through Supabase Auth."""

    client: Client

    def current_user_id(self, access_token: str) -> UUID | None:
        """Return the user id for the token, or None when it is rejected."""
        try:
            response = self.client.auth.get_user(access_token)
        except AuthApiError as exc:
            _logger.info("Rejected access token: %s", exc.message)
            return None
        except AuthError as exc:
            raise RemoteOperationError("Failed to verify access token") from exc
        if response is None or response.user is None:
            return None
        return UUID(response.user.id)
