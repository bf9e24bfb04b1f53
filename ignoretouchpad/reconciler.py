"""
Merging of live devices with saved preferences.

``merge`` is a pure function: the same catalog snapshot and preference
mapping always produce the same ordered view, which is what lets a user run
``list`` and then ``disable 1`` as two separate commands.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterator, Mapping, Sequence, Tuple

from .models import DeviceInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergedView:
    """
    Ordered, immutable list of live devices followed by ghosts.

    ``new_names`` lists live devices that had no preference record yet; the
    caller decides when to register and persist them.
    """
    devices: Tuple[DeviceInfo, ...] = ()
    new_names: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.devices)

    def __iter__(self) -> Iterator[DeviceInfo]:
        return iter(self.devices)

    def __getitem__(self, ordinal: int) -> DeviceInfo:
        return self.devices[ordinal]

    def live(self) -> Tuple[DeviceInfo, ...]:
        return tuple(device for device in self.devices if device.is_live)

    def ghosts(self) -> Tuple[DeviceInfo, ...]:
        return tuple(device for device in self.devices if device.is_ghost)

    def active_count(self) -> int:
        """Number of live devices that are currently running."""
        return sum(1 for device in self.devices if device.is_live and device.running)

    def discrepancies(self) -> Tuple[DeviceInfo, ...]:
        """Live devices whose running state disagrees with the saved preference."""
        return tuple(device for device in self.devices if device.has_discrepancy)

    def with_device(self, device: DeviceInfo) -> "MergedView":
        """Return a copy with the record at ``device.ordinal`` replaced."""
        devices = list(self.devices)
        devices[device.ordinal] = device
        return replace(self, devices=tuple(devices))


def merge(catalog: Sequence[DeviceInfo], prefs: Mapping[str, bool]) -> MergedView:
    """
    Merge a catalog snapshot with a preference mapping.

    1. Live devices keep enumeration order; ``ignored`` comes from ``prefs``
       and defaults to False for devices never seen before.
    2. Preference names with no live device become ghosts, appended in
       preference order.
    3. Ordinals are assigned 0..N-1 over the whole sequence.

    If the OS reports the same name twice, the later device takes the place
    of the earlier one, since both would share one preference record.

    Args:
        catalog: Live devices from DeviceCatalog.snapshot()
        prefs: Name -> ignored mapping from PreferenceStore.snapshot()

    Returns:
        MergedView: A new view that shares no containers with its inputs
    """
    live: Dict[str, DeviceInfo] = {}
    for device in catalog:
        if device.handle is None:
            continue
        if device.name in live:
            logger.warning(f"Duplicate device name '{device.name}'; the later device shadows the earlier one")
        live[device.name] = device

    merged = []
    new_names = []
    for name, device in live.items():
        if name in prefs:
            ignored = bool(prefs[name])
        else:
            ignored = False
            new_names.append(name)
        merged.append(replace(device, ignored=ignored))

    for name, ignored in prefs.items():
        if name not in live:
            merged.append(DeviceInfo(name=name, handle=None, running=False, ignored=bool(ignored)))

    devices = tuple(replace(device, ordinal=ordinal) for ordinal, device in enumerate(merged))
    return MergedView(devices=devices, new_names=tuple(new_names))


class Reconciler:
    """Merges catalog snapshots against a PreferenceStore."""

    def __init__(self, store):
        self.store = store

    def reconcile(self, catalog: Sequence[DeviceInfo]) -> MergedView:
        """
        Merge ``catalog`` with the store's current records.

        Newly seen devices are registered in the store as not ignored, but
        nothing is saved.
        """
        view = merge(catalog, self.store.snapshot())
        if view.new_names:
            self.store.register_devices(view.new_names)
        discrepancies = view.discrepancies()
        if discrepancies:
            logger.info("Preference and hardware state disagree for: "
                        + ", ".join(device.name for device in discrepancies))
        return view
