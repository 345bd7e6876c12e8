"""
Organizer batches: create an event, then ticket classes under it.

These precede the ticket lifecycle and have no state of their own to
check beyond argument sanity.
"""

from ..compose.args import ObjectArg, Str, U64
from ..compose.batch import Batch, BatchComposer
from ..config import TicketingConfig
from ..core.errors import INVALID_ARGUMENT, PreconditionFailedError
from ..core.ids import require_arg

CREATE_EVENT = "create_event"
CREATE_CLASS = "create_class"


def build_event_batch(
    config: TicketingConfig, name: str, starts_at: int, ends_at: int, poster_ref: str
) -> Batch:
    """
    Raises:
        PreconditionFailedError: INVALID_ARGUMENT if name is blank or the
            event ends before it starts
    """
    if not isinstance(name, str) or not name.strip():
        raise PreconditionFailedError(INVALID_ARGUMENT, "event name must be non-empty", transition=CREATE_EVENT)
    if ends_at < starts_at:
        raise PreconditionFailedError(
            INVALID_ARGUMENT, "event cannot end before it starts", transition=CREATE_EVENT
        )
    composer = BatchComposer(config.gas.create_event, label=CREATE_EVENT)
    composer.move_call(
        config.target("event", "new"),
        [Str(name), U64(starts_at), U64(ends_at), Str(poster_ref or "")],
    )
    return composer.build()


def build_class_batch(config: TicketingConfig, event_id: str, face_price: int, supply: int) -> Batch:
    """
    Raises:
        PreconditionFailedError: INVALID_ARGUMENT if event_id is empty or
            supply is not a positive integer
        TypeError: If face_price is not an integer
    """
    require_arg(event_id, "event_id", CREATE_CLASS)
    if isinstance(supply, bool) or not isinstance(supply, int) or supply <= 0:
        raise PreconditionFailedError(
            INVALID_ARGUMENT,
            f"supply must be a positive integer, got {supply!r}",
            transition=CREATE_CLASS,
            asset_id=event_id,
        )
    composer = BatchComposer(config.gas.create_class, label=CREATE_CLASS)
    composer.move_call(
        config.target("class", "new"),
        [ObjectArg(event_id), U64(face_price), U64(supply)],
    )
    return composer.build()
