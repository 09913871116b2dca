"""Client-side state for reference matching.

The store is constructed with an API client and handed to whatever renders
it. Every mutation replaces the current ``ReferenceState`` snapshot with a
new one and notifies subscribers.
"""

import enum
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from watchauth.client.api_client import WatchAuthClient
from watchauth.errors import UnknownError, WatchAuthError

logger = logging.getLogger(__name__)

MatchResult = Dict[str, Any]
Listener = Callable[["ReferenceState"], None]


class MatchStatus(str, enum.Enum):
    IDLE = "idle"
    MATCHING = "matching"
    MATCHED = "matched"
    FAILED = "failed"


@dataclass(frozen=True)
class ReferenceState:
    """Immutable snapshot of the matching workflow."""

    status: MatchStatus = MatchStatus.IDLE
    current_analysis: Optional[Any] = None
    match_results: Tuple[MatchResult, ...] = ()
    selected_match: Optional[MatchResult] = None
    error: Optional[str] = None
    request_seq: int = 0

    @property
    def is_matching(self) -> bool:
        return self.status is MatchStatus.MATCHING


class ReferenceStore:
    """Holds the current extraction, its ranked matches and the selection."""

    def __init__(self, client: WatchAuthClient):
        self._client = client
        self._state = ReferenceState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ReferenceState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, state: ReferenceState) -> ReferenceState:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        return state

    def set_current_analysis(self, analysis: Optional[Any]) -> ReferenceState:
        return self._set(replace(self._state, current_analysis=analysis))

    async def find_matches(self, analysis: Any, session_id: Optional[str] = None) -> ReferenceState:
        """
        Ask the matching endpoint for references that fit ``analysis``.

        Each call takes the next request sequence number. When the response
        arrives, it is applied only if no newer call (or clear_results) has
        happened in the meantime; otherwise it is dropped and the current
        snapshot is returned unchanged.
        """
        seq = self._state.request_seq + 1
        self._set(replace(
            self._state,
            status=MatchStatus.MATCHING,
            error=None,
            match_results=(),
            selected_match=None,
            request_seq=seq,
        ))

        try:
            body = await self._client.match_references(analysis, session_id=session_id)
        except WatchAuthError as e:
            return self._fail(seq, e.message)
        except Exception:
            logger.exception("Unexpected error while matching references")
            return self._fail(seq, UnknownError.default_message)

        if seq != self._state.request_seq:
            logger.debug(f"Discarding stale match response #{seq} (latest #{self._state.request_seq})")
            return self._state

        matches = tuple(body.get("matches") or ())
        logger.info(f"Found {len(matches)} match(es) for request #{seq}")
        return self._set(replace(
            self._state,
            status=MatchStatus.MATCHED,
            match_results=matches,
            selected_match=matches[0] if matches else None,
        ))

    def _fail(self, seq: int, message: str) -> ReferenceState:
        if seq != self._state.request_seq:
            logger.debug(f"Discarding stale match failure #{seq}: {message}")
            return self._state

        logger.warning(f"Match request #{seq} failed: {message}")
        return self._set(replace(
            self._state,
            status=MatchStatus.FAILED,
            error=message,
            match_results=(),
            selected_match=None,
        ))

    def select_match(self, match: Optional[MatchResult]) -> ReferenceState:
        return self._set(replace(self._state, selected_match=match))

    def clear_results(self) -> ReferenceState:
        """Back to idle. Any request still in flight will be ignored."""
        return self._set(ReferenceState(request_seq=self._state.request_seq + 1))
