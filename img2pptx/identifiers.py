"""Slide id and slide relationship id allocation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, NamedTuple, Optional, Set

from .errors import SlideCapacityError

if TYPE_CHECKING:
    from .package import Container

# Slide identifiers have a minimum value of 256 and a maximum value of
# less than 2147483648.
MIN_SLIDE_ID = 256
MAX_SLIDE_ID = 2**31 - 1
RELATIONSHIP_PREFIX = "rel"
IMAGE_RELATIONSHIP_ID = "relId1"


class SlideIdentifiers(NamedTuple):
    slide_id: int
    relationship_id: str


def relationship_id_for(slide_id: int) -> str:
    return f"{RELATIONSHIP_PREFIX}{slide_id}"


class SlideIdAllocator:
    """Running slide id counter for one build.

    ``peek`` hands out the next free pair without consuming it; ``commit``
    consumes it once the slide is registered, so an image that fails before
    registration does not burn an id.
    """

    def __init__(self, start: int = MIN_SLIDE_ID, reserved_relationship_ids: Iterable[str] = ()):
        self._next = max(int(start), MIN_SLIDE_ID)
        self._reserved: Set[str] = set(reserved_relationship_ids)
        self._last: Optional[int] = None

    @classmethod
    def for_container(cls, container: "Container") -> "SlideIdAllocator":
        existing = container.slide_ids()
        start = max(existing) + 1 if existing else MIN_SLIDE_ID
        return cls(start=start, reserved_relationship_ids=container.presentation_relationship_ids())

    @property
    def last_committed(self) -> Optional[int]:
        return self._last

    def peek(self) -> SlideIdentifiers:
        slide_id = self._next
        while relationship_id_for(slide_id) in self._reserved:
            slide_id += 1
        if slide_id > MAX_SLIDE_ID:
            raise SlideCapacityError(f"slide id {slide_id} exceeds the maximum of {MAX_SLIDE_ID}")
        return SlideIdentifiers(slide_id, relationship_id_for(slide_id))

    def commit(self, identifiers: SlideIdentifiers) -> None:
        if identifiers.slide_id < self._next:
            raise ValueError(f"slide id {identifiers.slide_id} was already handed out")
        self._reserved.add(identifiers.relationship_id)
        self._last = identifiers.slide_id
        self._next = identifiers.slide_id + 1

    def allocate(self) -> SlideIdentifiers:
        identifiers = self.peek()
        self.commit(identifiers)
        return identifiers
