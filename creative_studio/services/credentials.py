"""Session context for the access credential used by every remote call.

The hosting environment may offer a key selection capability. When it does,
the session asks it whether a key is selected and lets the user pick one;
when it does not, selection attempts fail with ``CapabilityUnavailable``.
Remote-call sites read the key from the session at the start of each call
and invalidate the session when the service rejects the key.
"""

import logging
from typing import Optional, Protocol

from creative_studio.errors import CapabilityUnavailable, ValidationError

logger = logging.getLogger(__name__)


class KeySelector(Protocol):
    async def has_selected_key(self) -> bool: ...

    async def open_select_key(self, api_key: Optional[str] = None) -> None: ...

    def current_key(self) -> Optional[str]: ...


class EnvironmentKeySelector:
    """Key selection backed by the configured key, replaceable from the browser."""

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key

    async def has_selected_key(self) -> bool:
        return bool(self._api_key)

    async def open_select_key(self, api_key: Optional[str] = None) -> None:
        api_key = (api_key or "").strip()
        if not api_key:
            raise ValidationError("API key cannot be empty.")
        self._api_key = api_key

    def current_key(self) -> Optional[str]:
        return self._api_key


class CredentialSession:
    def __init__(self, selector: Optional[KeySelector] = None, fallback_key: Optional[str] = None):
        self._selector = selector
        self._fallback_key = fallback_key
        self.selected = False
        self.checking = True

    @property
    def capability_available(self) -> bool:
        return self._selector is not None

    async def initialize(self) -> bool:
        if self._selector is not None:
            self.selected = await self._selector.has_selected_key()
        self.checking = False
        logger.info("Credential session initialised (selected=%s)", self.selected)
        return self.selected

    async def request_selection(self, api_key: Optional[str] = None) -> None:
        if self._selector is None:
            raise CapabilityUnavailable()
        await self._selector.open_select_key(api_key)
        # The selector gives no confirmation, so assume it succeeded.
        self.selected = True
        self.checking = False

    def invalidate(self) -> None:
        if self.selected:
            logger.warning("Credential rejected by the generation service; selection reset")
        self.selected = False

    def api_key(self) -> str:
        key = self._selector.current_key() if self._selector is not None else None
        key = key or self._fallback_key
        if not key:
            raise ValidationError("No API key is configured. Please select an API key.")
        return key
