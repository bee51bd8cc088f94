"""Readiness reducers over a set of resource handles.

The aggregate behaves like the least-buffered handle: the timeline can
only play through once every segment can.
"""

from __future__ import annotations

from typing import Iterable, List

from timedtext_player.playback.handles import NetworkState, ReadyState, ResourceHandle


def aggregate_ready_state(handles: Iterable[ResourceHandle]) -> int:
    """Minimum ready state over the handles (HAVE_NOTHING when empty)."""
    states = [h.ready_state for h in handles]
    return min(states) if states else ReadyState.HAVE_NOTHING


def aggregate_network_state(handles: Iterable[ResourceHandle]) -> int:
    """LOADING if any handle is loading, else the maximum state."""
    states = [h.network_state for h in handles]
    if not states:
        return NetworkState.NETWORK_EMPTY
    if NetworkState.NETWORK_LOADING in states:
        return NetworkState.NETWORK_LOADING
    return max(states)


def can_play(handles: Iterable[ResourceHandle]) -> bool:
    return aggregate_ready_state(handles) >= ReadyState.HAVE_FUTURE_DATA


def can_play_through(handles: Iterable[ResourceHandle]) -> bool:
    return aggregate_ready_state(handles) >= ReadyState.HAVE_ENOUGH_DATA


def any_seeking(handles: Iterable[ResourceHandle]) -> bool:
    return any(h.seeking for h in handles)


def playing_handles(handles: Iterable[ResourceHandle]) -> List[ResourceHandle]:
    """Handles that are currently not paused."""
    return [h for h in handles if not h.paused]
