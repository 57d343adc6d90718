"""PlanCollection aggregate: live mapping date key -> Plan mirrored from the remote store.

The mapping is only ever replaced as a whole (one snapshot at a time) by the
sync engine; readers get a read-only view and can subscribe to replacements.
"""
from types import MappingProxyType
from typing import Callable, Iterator, Mapping, Optional

from trip.domain.Plan import Plan
from trip.events.observable import ObservableValue


class PlanCollection:
    def __init__(self):
        self._observable: ObservableValue[Mapping[str, Plan]] = ObservableValue(MappingProxyType({}))
        self.snapshot_count = 0

    @property
    def value(self) -> Mapping[str, Plan]:
        return self._observable.value

    def replace(self, plans: Mapping[str, Plan]) -> None:
        '''
        Swaps in a complete new mapping. Only the sync engine's snapshot handler calls this.
        '''
        self.snapshot_count += 1
        self._observable.set(MappingProxyType(dict(plans)))

    def subscribe(self, callback: Callable[[Mapping[str, Plan]], None]) -> Callable[[], None]:
        return self._observable.subscribe(callback)

    def get(self, date_key: str) -> Optional[Plan]:
        return self.value.get(date_key)

    def __contains__(self, date_key) -> bool:
        return date_key in self.value

    def __len__(self) -> int:
        return len(self.value)

    def __iter__(self) -> Iterator[str]:
        return iter(self.value)

    def __str__(self) -> str:
        return f"PlanCollection({len(self)} plans, {self.snapshot_count} snapshots)"

    __repr__ = __str__
