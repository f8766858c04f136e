"""
Preview Navigation Guard

While staff is previewing a client's portal, the preview lives in the URL
(preview=true&clientId=...). Every in-app navigation the portal emits must
carry those parameters or the next page falls out of preview.
"""
import logging
from typing import Dict, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

PREVIEW_PARAM = "preview"
CLIENT_ID_PARAM = "clientId"
IMPERSONATE_CLIENT_ID_PARAM = "impersonateClientId"


def preview_query(client_id: str) -> Dict[str, str]:
    return {PREVIEW_PARAM: "true", CLIENT_ID_PARAM: client_id}


class PreviewNavigationGuard:
    """
    Appends the preview query parameters to in-app navigation targets.

    attach/detach are idempotent. Once detached, rewrite() is the identity
    function, so nothing keeps rewriting after impersonation ends.
    """

    def __init__(self) -> None:
        self._client_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return self._client_id is not None

    @property
    def client_id(self) -> Optional[str]:
        return self._client_id

    @property
    def params(self) -> Dict[str, str]:
        if self._client_id is None:
            return {}
        return preview_query(self._client_id)

    def attach(self, client_id: str) -> None:
        if self._client_id != client_id:
            logger.debug("Preview navigation guard attached for client %s", client_id)
        self._client_id = client_id

    def detach(self) -> None:
        if self._client_id is not None:
            logger.debug("Preview navigation guard detached for client %s", self._client_id)
        self._client_id = None

    def rewrite(self, target: str) -> str:
        """
        Return the navigation target with the preview parameters appended.

        Left untouched: anything while detached, external URLs, and targets
        that already carry their own query string.
        """
        if not self.active or not target:
            return target
        parts = urlsplit(target)
        if parts.scheme or parts.netloc or not parts.path.startswith("/"):
            return target
        if parts.query or "?" in target:
            return target
        return urlunsplit(("", "", parts.path, urlencode(self.params), parts.fragment))
