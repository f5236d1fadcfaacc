"""
Provider Dashboard Controller.

Screen-level orchestration for a provider (or an admin acting for one):
loads the provider, its locations and recent status updates as three
independent slices, and exposes single and bulk status changes.

Rules:
- Each slice is loading → loaded | errored on its own; one failed slice
  leaves the others usable
- Reads are retried with backoff; writes never are (the caller offers a
  manual retry when an error is retryable)
- Permission is checked before any write is issued
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from app.core.exceptions import FeedFindError, NotFoundError, PermissionDeniedError
from app.core.settings import settings
from app.db.retry import retry_read
from app.models.base import BulkItemOutcome, BulkResult
from app.services.authorization import UPDATE_STATUS, AuthorizationContext
from app.services.location_service import LocationService
from app.services.provider_service import ProviderService
from app.services.status_update_service import StatusUpdateService, enum_value
import logging

logger = logging.getLogger(__name__)


class SliceStatus(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


@dataclass
class SliceState:
    state: SliceStatus = SliceStatus.LOADING
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None
    retryable: bool = False

    @classmethod
    def loaded(cls, data: Any) -> "SliceState":
        return cls(state=SliceStatus.LOADED, data=data)

    @classmethod
    def errored(cls, error: FeedFindError) -> "SliceState":
        return cls(state=SliceStatus.ERRORED, error=error.message, code=error.code, retryable=error.retryable)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "data": self.data,
            "error": self.error,
            "code": self.code,
            "retryable": self.retryable,
        }


@dataclass
class DashboardState:
    provider: SliceState = field(default_factory=SliceState)
    locations: SliceState = field(default_factory=SliceState)
    updates: SliceState = field(default_factory=SliceState)
    is_admin_view: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.to_dict(),
            "locations": self.locations.to_dict(),
            "updates": self.updates.to_dict(),
            "is_admin_view": self.is_admin_view,
        }


def parse_wait_time(value: Union[int, str, None]) -> Optional[int]:
    """
    Convert the wait-time form field.

    Blank or non-numeric input yields None so the key is left out of the
    payload entirely.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class ProviderDashboardController:
    """
    Controller for one provider's dashboard.

    Services and the authorization context are injected so tests can pass
    fakes without patching module globals.
    """

    def __init__(
        self,
        provider_id: str,
        auth: AuthorizationContext,
        providers: ProviderService,
        locations: LocationService,
        status_updates: StatusUpdateService,
        read: Callable[..., Any] = retry_read,
    ):
        self.provider_id = provider_id
        self.auth = auth
        self.providers = providers
        self.locations = locations
        self.status_updates = status_updates
        self.read = read
        self.state = DashboardState()

    def load(self) -> DashboardState:
        """
        Load all three slices.

        Membership lives on the provider document. When that read fails
        (rather than finding nothing), membership cannot be checked, so any
        signed-in user gets the locations and updates slices, which are
        public data, next to an errored provider slice.

        Raises:
            PermissionDeniedError: the user may not view this dashboard
        """
        state = DashboardState(is_admin_view=self.auth.is_admin_view(self.provider_id))

        provider = None
        provider_read_failed = False
        try:
            provider = self.read(self.providers.get_by_id, self.provider_id)
            if provider is None:
                state.provider = SliceState.errored(NotFoundError(f"Provider {self.provider_id} not found"))
            else:
                state.provider = SliceState.loaded(provider)
        except FeedFindError as e:
            logger.warning(f"Dashboard provider slice failed for {self.provider_id}: {e.message}")
            state.provider = SliceState.errored(e)
            provider_read_failed = True

        if provider_read_failed:
            self.auth.require_authenticated()
        else:
            self.auth.require_view_provider(self.provider_id, provider)

        state.locations = self._load_slice("locations", self.locations.get_by_provider_id)
        state.updates = self._load_slice("updates", self.status_updates.get_recent_by_provider_id)

        self.state = state
        return state

    def update_status(
        self,
        location_id: str,
        status: str,
        notes: Optional[str] = None,
        estimated_wait_time: Union[int, str, None] = None,
        food_available: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Single status change for one of this provider's locations.

        Raises:
            PermissionDeniedError: before any write when the user may not update
            ValidationError / NotFoundError / NetworkError: from the write path
        """
        self._require_update_permission()

        location = self.locations.require(location_id)
        if location.get("providerId") != self.provider_id:
            raise PermissionDeniedError("This location does not belong to the provider.")

        record = self.locations.update_status(
            location_id=location_id,
            status=status,
            updated_by=self.auth.uid,
            notes=notes,
            estimated_wait_time=parse_wait_time(estimated_wait_time),
            food_available=food_available,
        )
        self._apply_local_update(record)
        return record

    def bulk_update_status(
        self,
        location_ids: Iterable[str],
        status: str,
        notes: Optional[str] = None,
    ) -> BulkResult:
        """
        Apply one status to several locations with per-item outcomes.

        Locations owned by another provider are reported as failed items;
        the rest go through the independent batch path.
        """
        self._require_update_permission()

        location_ids = list(location_ids)
        outcomes: Dict[int, BulkItemOutcome] = {}
        pending: List[int] = []
        for index, location_id in enumerate(location_ids):
            location = self.locations.get_by_id(location_id)
            if location is not None and location.get("providerId") != self.provider_id:
                error = PermissionDeniedError("This location does not belong to the provider.")
                outcomes[index] = BulkItemOutcome(id=location_id, success=False, error=error.message, code=error.code)
            else:
                pending.append(index)

        batch = self.locations.batch_update_status([
            {
                "location_id": location_ids[index],
                "status": status,
                "updated_by": self.auth.uid,
                "notes": notes,
            }
            for index in pending
        ])
        for index, outcome in zip(pending, batch.outcomes):
            outcomes[index] = outcome
            if outcome.success and outcome.record:
                self._apply_local_update(outcome.record)

        result = BulkResult(outcomes=[outcomes[index] for index in range(len(location_ids))])
        logger.info(
            f"Dashboard bulk update for provider {self.provider_id}: "
            f"{result.succeeded_count}/{len(location_ids)} locations set to {enum_value(status)}"
        )
        return result

    def status_counts(self) -> Dict[str, int]:
        """Number of locations per currentStatus ("unknown" when never reported)."""
        if self.state.locations.state == SliceStatus.LOADED:
            locations = self.state.locations.data
        else:
            locations = self.read(self.locations.get_by_provider_id, self.provider_id)

        counts: Dict[str, int] = {}
        for location in locations:
            status = location.get("currentStatus") or "unknown"
            counts[status] = counts.get(status, 0) + 1
        return counts

    def _load_slice(self, name: str, loader: Callable[[str], Any]) -> SliceState:
        try:
            return SliceState.loaded(self.read(loader, self.provider_id))
        except FeedFindError as e:
            logger.warning(f"Dashboard {name} slice failed for {self.provider_id}: {e.message}")
            return SliceState.errored(e)
        except Exception as e:
            logger.error(f"Dashboard {name} slice failed for {self.provider_id}: {str(e)}", exc_info=True)
            return SliceState.errored(FeedFindError(f"Failed to load {name}"))

    def _require_update_permission(self) -> None:
        self.auth.require_authenticated()
        provider = self.providers.get_by_id(self.provider_id)
        self.auth.require_permission(self.provider_id, provider, UPDATE_STATUS)

    def _apply_local_update(self, record: Dict[str, Any]) -> None:
        """Reflect a committed write in already-loaded slices."""
        if self.state.locations.state == SliceStatus.LOADED:
            for location in self.state.locations.data:
                if location["id"] == record["locationId"]:
                    location["currentStatus"] = record["status"]
                    location["lastStatusUpdate"] = record["timestamp"]
        if self.state.updates.state == SliceStatus.LOADED:
            self.state.updates.data.insert(0, record)
            del self.state.updates.data[settings.RECENT_UPDATES_LIMIT:]
