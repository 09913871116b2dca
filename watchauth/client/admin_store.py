"""Client-side state for the admin reference library."""

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from watchauth.client.api_client import WatchAuthClient
from watchauth.config import settings
from watchauth.errors import UnknownError, WatchAuthError

logger = logging.getLogger(__name__)

Listener = Callable[["AdminState"], None]


@dataclass(frozen=True)
class AdminFilters:
    brand: Optional[str] = None
    model: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = settings.references_page_size
    total: int = 0
    total_pages: int = 0


@dataclass(frozen=True)
class AdminState:
    references: Tuple[Dict[str, Any], ...] = ()
    is_loading: bool = False
    error: Optional[str] = None
    filters: AdminFilters = field(default_factory=AdminFilters)
    pagination: Pagination = field(default_factory=Pagination)


class AdminStore:
    """Filters, pagination and the loaded page of reference watches."""

    def __init__(self, client: WatchAuthClient):
        self._client = client
        self._state = AdminState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AdminState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, state: AdminState) -> AdminState:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        return state

    async def load_references(self) -> AdminState:
        """Fetch the current page with the current filters."""
        state = self._set(replace(self._state, is_loading=True, error=None))
        try:
            body = await self._client.list_references(
                page=state.pagination.page,
                limit=state.pagination.limit,
                **asdict(state.filters),
            )
            references = tuple(body.get("data") or ())
            pagination = Pagination(**body["pagination"])
        except WatchAuthError as e:
            logger.warning(f"Failed to load references: {e.message}")
            return self._set(replace(self._state, is_loading=False, error=e.message))
        except Exception:
            logger.exception("Unexpected error while loading references")
            return self._set(replace(self._state, is_loading=False, error=UnknownError.default_message))

        return self._set(replace(
            self._state,
            references=references,
            pagination=pagination,
            is_loading=False,
        ))

    async def set_filters(self, **changes: Optional[str]) -> AdminState:
        """Merge filter changes, go back to page 1 and reload."""
        filters = replace(self._state.filters, **changes)
        self._set(replace(
            self._state,
            filters=filters,
            pagination=replace(self._state.pagination, page=1),
        ))
        return await self.load_references()

    async def set_page(self, page: int) -> AdminState:
        self._set(replace(self._state, pagination=replace(self._state.pagination, page=page)))
        return await self.load_references()

    async def delete_reference(self, reference_id: str) -> AdminState:
        """Delete, then reload. Failures are recorded and re-raised."""
        try:
            await self._client.delete_reference(reference_id)
        except WatchAuthError as e:
            self._set(replace(self._state, error=e.message))
            raise

        logger.info(f"Deleted reference {reference_id}")
        return await self.load_references()

    async def refresh_references(self) -> AdminState:
        return await self.load_references()
