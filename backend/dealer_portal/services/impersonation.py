"""
Impersonation Controller - decides who the client portal is rendered for.

Exactly one of these holds at any time:
- ANONYMOUS: nobody, the portal must redirect
- AUTHENTICATED_CLIENT: a client that logged in with their own credentials
- IMPERSONATING_CLIENT: staff previewing the portal as a client

Resolution order for a portal request (first match wins):
1. preview=true&clientId=X (or impersonateClientId=X) in the request
2. the impersonation marker left by an earlier preview in this window
3. the durable client session
4. nothing
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional
from uuid import UUID

from dealer_portal.core.config import Settings, settings as default_settings
from dealer_portal.core.exceptions import (
    ClientDirectoryError,
    ClientNotFoundError,
    InvalidClientCredentialsError,
)
from dealer_portal.core.security import verify_password
from dealer_portal.schemas.client import ClientIdentity
from dealer_portal.services.client_directory import ClientDirectory, ClientRecord
from dealer_portal.services.navigation import (
    CLIENT_ID_PARAM,
    IMPERSONATE_CLIENT_ID_PARAM,
    PREVIEW_PARAM,
    PreviewNavigationGuard,
)
from dealer_portal.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class ViewerState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED_CLIENT = "authenticated_client"
    IMPERSONATING_CLIENT = "impersonating_client"


@dataclass(frozen=True)
class RequestContext:
    """The parts of an incoming portal request that can select an identity"""
    preview: bool = False
    client_id: Optional[str] = None
    # Set for dealership-level staff: clients of other dealerships are not resolved
    dealership_id: Optional[UUID] = None

    @property
    def wants_preview(self) -> bool:
        return self.preview and bool(self.client_id)

    @classmethod
    def from_query_params(
        cls,
        params: Mapping[str, str],
        dealership_id: Optional[UUID] = None,
    ) -> "RequestContext":
        # impersonateClientId=X is the "open in new tab" form of preview=true&clientId=X
        impersonate_id = (params.get(IMPERSONATE_CLIENT_ID_PARAM) or "").strip()
        if impersonate_id:
            return cls(preview=True, client_id=impersonate_id, dealership_id=dealership_id)
        client_id = (params.get(CLIENT_ID_PARAM) or "").strip() or None
        return cls(
            preview=params.get(PREVIEW_PARAM) == "true",
            client_id=client_id,
            dealership_id=dealership_id,
        )


def identity_from_record(record: ClientRecord, is_preview: bool) -> ClientIdentity:
    return ClientIdentity(
        id=record.id,
        name=record.name,
        email=record.email,
        phone=record.phone,
        is_preview=is_preview,
    )


class ImpersonationController:
    """
    The only writer of the portal session storage.

    Build one per request (see web.dependencies) and hand it to whatever
    needs the active identity.
    """

    def __init__(
        self,
        directory: ClientDirectory,
        store: SessionStore,
        settings: Settings = default_settings,
    ):
        self.directory = directory
        self.store = store
        self.settings = settings
        self.navigation_guard = PreviewNavigationGuard()
        self._state = ViewerState.ANONYMOUS
        self._identity: Optional[ClientIdentity] = None

    @property
    def state(self) -> ViewerState:
        return self._state

    @property
    def identity(self) -> Optional[ClientIdentity]:
        return self._identity

    def _set_viewer(self, state: ViewerState, identity: Optional[ClientIdentity]) -> None:
        self._state = state
        self._identity = identity
        if state == ViewerState.IMPERSONATING_CLIENT and identity is not None:
            self.navigation_guard.attach(identity.id)
        else:
            self.navigation_guard.detach()

    def _placeholder_identity(self, client_id: str) -> ClientIdentity:
        return ClientIdentity(
            id=client_id,
            name=self.settings.preview_fallback_name,
            email=self.settings.preview_fallback_email,
            is_preview=True,
        )

    async def _preview_identity(
        self,
        client_id: str,
        dealership_id: Optional[UUID] = None,
    ) -> ClientIdentity:
        """Preview identity for a possibly stale link. Never raises."""
        try:
            record = await self.directory.find_by_id(client_id)
        except ClientDirectoryError as e:
            logger.warning("Client directory unavailable while previewing %s: %s", client_id, e)
            record = None

        if record is not None and dealership_id and record.dealership_id != dealership_id:
            logger.warning(
                "Preview of client %s denied for dealership %s, using placeholder",
                client_id, dealership_id
            )
            record = None

        if record is None:
            logger.info("Preview requested for unknown client %s, using placeholder identity", client_id)
            return self._placeholder_identity(client_id)
        return identity_from_record(record, is_preview=True)

    def _enter_preview(self, identity: ClientIdentity) -> None:
        # Last write wins: a new preview silently replaces the previous one
        if self.store.load_impersonation_marker() != identity.id:
            self.store.save_impersonation_marker(identity.id)
        if self.settings.persist_preview_session:
            self.store.save_client_session(identity)
        self._set_viewer(ViewerState.IMPERSONATING_CLIENT, identity)

    async def resolve_active_identity(
        self,
        context: Optional[RequestContext] = None,
    ) -> Optional[ClientIdentity]:
        """Return the identity the portal should render for, or None"""
        context = context or RequestContext()

        if context.wants_preview:
            identity = await self._preview_identity(context.client_id, context.dealership_id)
            self._enter_preview(identity)
            return identity

        marker = self.store.load_impersonation_marker()
        if marker:
            identity = await self._preview_identity(marker, context.dealership_id)
            self._enter_preview(identity)
            return identity

        session = self.store.load_client_session()
        if session is not None and session.is_preview:
            if self.settings.persist_preview_session:
                self._enter_preview(session)
                return session
            # A preview left in the durable slot is never a real login
            logger.info("Discarding preview identity %s found in the client session", session.id)
            self.store.clear_client_session()
            session = None

        if session is not None:
            self._set_viewer(ViewerState.AUTHENTICATED_CLIENT, session)
            return session

        self._set_viewer(ViewerState.ANONYMOUS, None)
        return None

    async def start_impersonation(
        self,
        client_id: str,
        actor: Optional[str] = None,
        dealership_id: Optional[UUID] = None,
    ) -> ClientIdentity:
        """
        Explicit staff action: view the portal as client_id.

        Raises ClientNotFoundError for unknown clients (and, for
        dealership-scoped staff, clients of other dealerships) and lets
        ClientDirectoryError through so the caller can retry. Nothing is
        persisted on failure.
        """
        record = await self.directory.find_by_id(client_id)
        if record is None or (dealership_id and record.dealership_id != dealership_id):
            raise ClientNotFoundError(client_id)

        previous = self.store.load_impersonation_marker()
        identity = identity_from_record(record, is_preview=True)
        self._enter_preview(identity)

        if previous and previous != client_id:
            logger.info(
                "IMPERSONATION REPLACED: %s switched from client %s to %s", actor or "staff", previous, client_id
            )
        logger.info("IMPERSONATION STARTED: %s is now viewing the portal as client %s", actor or "staff", client_id)
        return identity

    def stop_impersonation(self, actor: Optional[str] = None) -> None:
        """Clear the marker and any preview copy of the session. A real client login is kept."""
        client_id = self.store.load_impersonation_marker()
        self.store.clear_impersonation_marker()

        session = self.store.load_client_session()
        if session is not None and session.is_preview:
            self.store.clear_client_session()
            session = None

        if session is not None:
            self._set_viewer(ViewerState.AUTHENTICATED_CLIENT, session)
        else:
            self._set_viewer(ViewerState.ANONYMOUS, None)

        if client_id:
            logger.info("IMPERSONATION STOPPED: %s stopped viewing the portal as client %s", actor or "staff", client_id)

    def impersonated_client_id(self) -> Optional[str]:
        return self.store.load_impersonation_marker()

    def is_impersonating(self) -> bool:
        return self.impersonated_client_id() is not None

    async def login_client(self, email: str, password: str) -> ClientIdentity:
        """Real client login. Replaces any preview in this window."""
        record = await self.directory.find_by_email(email)
        if (
            record is None
            or not record.is_active
            or not record.password_hash
            or not verify_password(password, record.password_hash)
        ):
            raise InvalidClientCredentialsError("Incorrect email or password")

        identity = identity_from_record(record, is_preview=False)
        self.store.clear_impersonation_marker()
        self.store.save_client_session(identity)
        self._set_viewer(ViewerState.AUTHENTICATED_CLIENT, identity)
        logger.info("Client %s logged in to the portal", record.id)
        return identity

    def logout_client(self) -> None:
        self.store.clear_client_session()
        self.store.clear_impersonation_marker()
        self._set_viewer(ViewerState.ANONYMOUS, None)
