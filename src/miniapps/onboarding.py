"""
Onboarding Validator - the add-custom-app workflow.

Tracks a single candidate URL through normalization, debouncing,
duplicate detection and manifest resolution:

    EMPTY / INVALID -> DEBOUNCING -> RESOLVING -> RESOLVED | UNSUPPORTED

New input may arrive in any state. Manifest resolution cannot be
cancelled; every resolution is tagged with the URL it was issued for and
its result is applied only if that URL is still the debounced candidate
and the validator is still waiting for it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set
from urllib.parse import quote

from common.exceptions import (
    DuplicateAppError, InvalidUrlError, ManifestError, OnboardingError, ValidationError,
)
from utils.url import normalize_url, is_valid_url
from .descriptor import AppDescriptor, NetworkContext
from .manifest import ManifestResolver
from .registry import AppRegistry

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.3
DEFAULT_RESOLVE_TIMEOUT = 10.0
SHARE_PATH = "/share/safe-app"

RISK_DISCLAIMER = "This app is not part of the wallet and I agree to use it at my own risk."


class ValidatorState(Enum):
    """Where the candidate URL is in the onboarding flow."""
    EMPTY = "empty"
    INVALID = "invalid"
    DEBOUNCING = "debouncing"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    UNSUPPORTED = "unsupported"


_INPUT_STATES = {ValidatorState.EMPTY, ValidatorState.INVALID, ValidatorState.DEBOUNCING}

# Format: {current_state: {allowed target states}}
VALID_TRANSITIONS: Dict[ValidatorState, Set[ValidatorState]] = {
    ValidatorState.EMPTY: set(_INPUT_STATES),
    ValidatorState.INVALID: set(_INPUT_STATES),
    ValidatorState.DEBOUNCING: _INPUT_STATES | {ValidatorState.RESOLVING},
    ValidatorState.RESOLVING: _INPUT_STATES | {
        ValidatorState.RESOLVED,
        ValidatorState.UNSUPPORTED,
    },
    ValidatorState.RESOLVED: set(_INPUT_STATES),
    ValidatorState.UNSUPPORTED: set(_INPUT_STATES),
}


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


@dataclass(frozen=True)
class ValidatorSnapshot:
    """Immutable view of the validator for observers."""
    state: ValidatorState
    url: str
    descriptor: Optional[AppDescriptor]
    error: Optional[ValidationError]
    is_duplicate: bool
    already_registered: bool
    requires_risk_acknowledgement: bool
    risk_acknowledged: bool
    can_submit: bool


class OnboardingValidator:
    """
    Drives the add-custom-app form for one network.

    ``set_input`` must be called from a running event loop; the debounce
    and resolution steps run as tasks on that loop.
    """

    def __init__(
        self,
        registry: AppRegistry,
        resolver: ManifestResolver,
        network: NetworkContext,
        debounce: float = DEFAULT_DEBOUNCE,
        resolve_timeout: Optional[float] = DEFAULT_RESOLVE_TIMEOUT,
    ):
        self.registry = registry
        self.resolver = resolver
        self.network = network
        self.debounce = debounce
        self.resolve_timeout = resolve_timeout

        self._state = ValidatorState.EMPTY
        self._url = ""
        self._debounced_url: Optional[str] = None
        self._descriptor: Optional[AppDescriptor] = None
        self._error: Optional[ValidationError] = None
        self._duplicate = False
        self._risk_acknowledged = False

        self._debounce_task: Optional[asyncio.Task] = None
        self._resolutions: Set[asyncio.Task] = set()
        self._callbacks: List[Callable[[ValidatorSnapshot], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ValidatorState:
        return self._state

    @property
    def url(self) -> str:
        """Normalized candidate URL."""
        return self._url

    @property
    def descriptor(self) -> Optional[AppDescriptor]:
        return self._descriptor

    @property
    def error(self) -> Optional[ValidationError]:
        return self._error

    @property
    def is_duplicate(self) -> bool:
        return self._duplicate

    @property
    def risk_acknowledged(self) -> bool:
        return self._risk_acknowledged

    @property
    def already_registered(self) -> bool:
        """Resolved app is already listed; no disclaimer is shown for it."""
        return self._state == ValidatorState.RESOLVED and self._duplicate

    @property
    def requires_risk_acknowledgement(self) -> bool:
        return self._state == ValidatorState.RESOLVED and not self._duplicate

    @property
    def can_submit(self) -> bool:
        return (
            self._state == ValidatorState.RESOLVED
            and self._descriptor is not None
            and not self._duplicate
            and self._risk_acknowledged
        )

    def snapshot(self) -> ValidatorSnapshot:
        return ValidatorSnapshot(
            state=self._state,
            url=self._url,
            descriptor=self._descriptor,
            error=self._error,
            is_duplicate=self._duplicate,
            already_registered=self.already_registered,
            requires_risk_acknowledgement=self.requires_risk_acknowledgement,
            risk_acknowledged=self._risk_acknowledged,
            can_submit=self.can_submit,
        )

    def on_change(self, callback: Callable[[ValidatorSnapshot], None]) -> None:
        """Register a callback fired after every state change."""
        self._callbacks.append(callback)

    def _transition(self, new_state: ValidatorState) -> None:
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise StateTransitionError(
                f"Cannot move from {self._state.name} to {new_state.name}"
            )

        old_state = self._state
        self._state = new_state
        logger.debug(f"Onboarding {self._url or '<empty>'}: {old_state.name} -> {new_state.name}")
        self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for callback in self._callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning(f"Onboarding callback error: {e}")

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_input(self, raw_url: str) -> ValidatorState:
        """
        Handle a change of the URL field.

        Returns:
            The state right after the change.
        """
        url = normalize_url(raw_url)

        # Same candidate as before (e.g. a trailing slash was typed)
        if url and url == self._url and self._state not in (
            ValidatorState.EMPTY, ValidatorState.INVALID,
        ):
            return self._state

        self._cancel_debounce()
        self._url = url
        self._descriptor = None
        self._duplicate = False

        if not url:
            self._debounced_url = None
            self._error = None
            self._transition(ValidatorState.EMPTY)
            return self._state

        if not is_valid_url(url):
            self._debounced_url = None
            self._error = InvalidUrlError(url)
            self._transition(ValidatorState.INVALID)
            return self._state

        self._duplicate = self.registry.is_duplicate(self.network, url)
        self._error = DuplicateAppError(url) if self._duplicate else None
        self._transition(ValidatorState.DEBOUNCING)
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounce(url))
        return self._state

    def acknowledge_risk(self, accepted: bool = True) -> None:
        self._risk_acknowledged = accepted
        self._notify()

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    async def _debounce(self, url: str) -> None:
        await asyncio.sleep(self.debounce)
        if url != self._url or self._state != ValidatorState.DEBOUNCING:
            return

        self._debounced_url = url
        self._transition(ValidatorState.RESOLVING)
        task = asyncio.get_running_loop().create_task(self._resolve(url))
        self._resolutions.add(task)
        task.add_done_callback(self._resolutions.discard)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _resolve(self, url: str) -> None:
        descriptor = None
        error = None
        try:
            descriptor = await asyncio.wait_for(
                self.resolver.resolve(url, self.network), self.resolve_timeout
            )
        except ManifestError as e:
            error = e
        except asyncio.TimeoutError as e:
            error = ManifestError(url, f"manifest request timed out after {self.resolve_timeout}s", cause=e)
        except Exception as e:
            logger.error(f"Manifest resolver failed for {url}: {e}")
            error = ManifestError(url, str(e), cause=e)

        self._apply(url, descriptor, error)

    def _apply(
        self,
        url: str,
        descriptor: Optional[AppDescriptor],
        error: Optional[ManifestError],
    ) -> None:
        if url != self._debounced_url or self._state != ValidatorState.RESOLVING:
            logger.debug(f"Discarding stale manifest result for {url}")
            return

        if error is not None:
            logger.info(f"App at {url} is unsupported: {error.message}")
            self._error = error
            self._transition(ValidatorState.UNSUPPORTED)
            return

        self._descriptor = descriptor
        self._transition(ValidatorState.RESOLVED)

    async def settle(self) -> ValidatorState:
        """Wait until no debounce or resolution is pending."""
        while True:
            pending = [t for t in self._resolutions if not t.done()]
            if self._debounce_task is not None and not self._debounce_task.done():
                pending.append(self._debounce_task)
            if not pending:
                return self._state
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self) -> AppDescriptor:
        """
        Add the resolved app to the registry and reset the form.

        Raises:
            DuplicateAppError: The URL is already listed
            OnboardingError: The acceptance gate is closed
            StorageError: The registry could not persist the app
        """
        if self._duplicate:
            raise DuplicateAppError(self._url)
        if self._state != ValidatorState.RESOLVED or self._descriptor is None:
            raise OnboardingError(f"app is {self._state.value}", url=self._url or None)
        if not self._risk_acknowledged:
            raise OnboardingError("the risk disclaimer was not accepted", url=self._url)

        descriptor = self._descriptor
        self.registry.add_custom_app(self.network, descriptor)
        self.reset()
        return descriptor

    def share_url(self, origin: str) -> str:
        """Link that opens the resolved app for this network."""
        if self._descriptor is None:
            return ""
        app_url = quote(self._descriptor.url, safe="!*'()")
        return (
            f"{origin.rstrip('/')}{SHARE_PATH}"
            f"?appUrl={app_url}&chain={quote(self.network.short_name)}"
        )

    def reset(self) -> None:
        """Back to an empty form."""
        self._cancel_debounce()
        self._url = ""
        self._debounced_url = None
        self._descriptor = None
        self._error = None
        self._duplicate = False
        self._risk_acknowledged = False
        self._transition(ValidatorState.EMPTY)

    def close(self) -> None:
        """Cancel everything still pending."""
        self._cancel_debounce()
        for task in list(self._resolutions):
            task.cancel()
        self._resolutions.clear()
