"""Error taxonomy for the compiler and the playback controller.

WHY: Nothing in the core is fatal. Errors still need names so the
compiler and the controller can catch exactly what they recover from
instead of swallowing everything.

HOW: Two exception types. A lookup miss is not an exception:
timeline lookups return an empty TimelineHit instead.

RULES:
- MalformedDescriptorError is caught per item by the compiler, which
  substitutes a zero-length range and continues
- NotReadyError is caught at the controller's public surface and turned
  into a logged no-op
"""

from __future__ import annotations


class MalformedDescriptorError(ValueError):
    """Raised when a descriptor's timing is missing or unparsable."""

    def __init__(self, what: str, detail: str) -> None:
        self.what = what
        self.detail = detail
        super().__init__(f"Malformed {what}: {detail}")


class NotReadyError(RuntimeError):
    """Raised when an action needs a resource handle that is under-buffered.

    RULES:
    - Carries the handle's ready state and the threshold it missed
    """

    def __init__(self, ready_state: int, required: int) -> None:
        self.ready_state = ready_state
        self.required = required
        super().__init__(
            f"Resource handle not ready (ready_state={ready_state}, required={required})"
        )
