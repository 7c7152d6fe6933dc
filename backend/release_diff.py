"""
Delta between two release snapshots.
"""
from typing import Dict, List, Mapping

from kube_types import ChangeType, DeltaEntry, ResourceRecord


def get_delta(previous: Mapping[str, ResourceRecord], current: Mapping[str, ResourceRecord]) -> List[DeltaEntry]:
    """
    Classify every identity of two snapshots as added, changed or removed.

    Content is compared as raw document text. Entries are ordered by
    identity string. Neither input is modified.
    """
    entries: List[DeltaEntry] = []
    for key in sorted(set(previous) | set(current)):
        if key in previous and key in current:
            if previous[key].content != current[key].content:
                entries.append(DeltaEntry(ChangeType.CHANGED, current[key].identity, current[key]))
        elif key in current:
            entries.append(DeltaEntry(ChangeType.ADDED, current[key].identity, current[key]))
        else:
            entries.append(DeltaEntry(ChangeType.REMOVED, previous[key].identity))
    return entries


def wait_targets(entries: List[DeltaEntry]) -> List[ResourceRecord]:
    """Records that need a readiness wait; removed resources are left out."""
    return [entry.record for entry in entries if entry.change is not ChangeType.REMOVED]


def format_changes(entries: List[DeltaEntry]) -> List[str]:
    if not entries:
        return ["No changes"]
    return ["Changes:"] + [f"{entry.change.marker} {entry.key}" for entry in entries]


def summarize(entries: List[DeltaEntry]) -> Dict[str, int]:
    counts = {change.value: 0 for change in ChangeType}
    for entry in entries:
        counts[entry.change.value] += 1
    return counts
