"""Per-request rendering options."""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from ..models.content import PUBLISHED, DRAFT
from ..utils.timezone import now_local_string, local_date

SUNDAY = 0
MONDAY = 1

@dataclass(frozen=True)
class RenderContext:
    """
    Options for one schedule request.

    A context is built per request and passed down explicitly, so
    concurrent requests never share filter state.

    Fields:
        now: Current naive local time ('Y-m-d H:i:s')
        category_ids: Restrict local and standalone events to these categories
        source_slugs: Restrict the schedule to these feed sources
        include_drafts: Also show unpublished content items
        start_of_week: 0 for Sunday, 1 for Monday
    """
    now: str
    category_ids: Tuple[int, ...] = field(default_factory=tuple)
    source_slugs: Tuple[str, ...] = field(default_factory=tuple)
    include_drafts: bool = False
    start_of_week: int = MONDAY

    @classmethod
    def create(
        cls,
        now: Optional[str] = None,
        category_ids: Optional[Iterable[int]] = None,
        source_slugs: Optional[Iterable[str]] = None,
        include_drafts: bool = False,
        start_of_week: int = MONDAY
    ) -> 'RenderContext':
        """
        Build a context, reading the clock when no time is given.

        Raises:
            ValueError: If start_of_week is not 0 or 1
        """
        if start_of_week not in (SUNDAY, MONDAY):
            raise ValueError(f"start_of_week must be 0 (Sunday) or 1 (Monday), got {start_of_week}")
        return cls(
            now=now or now_local_string(),
            category_ids=tuple(int(c) for c in (category_ids or ())),
            source_slugs=tuple(s for s in (source_slugs or ()) if s),
            include_drafts=include_drafts,
            start_of_week=start_of_week,
        )

    @property
    def today(self) -> str:
        return local_date(self.now)

    @property
    def statuses(self) -> Tuple[str, ...]:
        return (PUBLISHED, DRAFT) if self.include_drafts else (PUBLISHED,)
