"""Cross-entity lookup state shared between import phases."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Set, Tuple

# Well-known group ids on the target platform.
GUEST_GROUP_ID = 1
MEMBER_GROUP_ID = 2
ADMIN_GROUP_ID = 3

# Legacy system group id -> target system group id.
GROUP_ID_MAP: Mapping[int, int] = MappingProxyType({
    1: ADMIN_GROUP_ID,
    2: GUEST_GROUP_ID,
    3: MEMBER_GROUP_ID,
})


class IdentifierMap:
    """Read-only remapping of well-known legacy ids; other ids pass through."""

    def __init__(self, mapping: Mapping[int, int]):
        self._mapping = MappingProxyType(dict(mapping))

    def remap(self, legacy_id: int) -> int:
        return self._mapping.get(legacy_id, legacy_id)

    def is_system(self, legacy_id: int) -> bool:
        return legacy_id in self._mapping


class ChannelIndex:
    """Channel ids created during the run, in creation order.

    The first entry is the fallback channel for posts whose tags did not
    resolve. Once frozen no further ids can be added.
    """

    def __init__(self):
        self._ids: List[int] = []
        self._frozen = False

    def add(self, channel_id: int) -> None:
        if self._frozen:
            raise RuntimeError("Channel index is frozen; channels can no longer be added")
        self._ids.append(channel_id)

    def freeze(self) -> Tuple[int, ...]:
        self._frozen = True
        return tuple(self._ids)


@dataclass
class UserIndex:
    """Ids of users that exist in the target after the users phase."""
    ids: Set[int] = field(default_factory=set)

    def add(self, user_id: int) -> None:
        self.ids.add(user_id)

    def known(self, user_ids: Iterable[int]) -> Set[int]:
        return {user_id for user_id in user_ids if user_id in self.ids}

    def keep_known(self, user_ids: Iterable[int]) -> List[int]:
        """Drop unknown ids, keeping order and repeats."""
        return [user_id for user_id in user_ids if user_id in self.ids]


@dataclass(frozen=True)
class MappingContext:
    """Immutable lookup context handed to every mapper call."""
    group_map: IdentifierMap = field(default_factory=lambda: IdentifierMap(GROUP_ID_MAP))
    channel_ids: Tuple[int, ...] = ()
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def fallback_channel_id(self) -> Optional[int]:
        return self.channel_ids[0] if self.channel_ids else None

    def with_channels(self, channel_ids: Tuple[int, ...]) -> "MappingContext":
        return MappingContext(group_map=self.group_map, channel_ids=channel_ids, now=self.now)

