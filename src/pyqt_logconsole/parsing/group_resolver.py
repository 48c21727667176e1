"""
Level inheritance for grouped output.

Producers wrap one logical entry in group boundary lines (start /
startCollapsed ... end), typically box-drawing borders. Boundary lines have
no level of their own, so they take the level of the content they wrap:

- an end marker copies the nearest preceding content line's level;
- a content line overwrites the run of start markers directly before it;
- a start marker keeps its provisional level until content arrives.

Each call patches only the tail of the sequence with a bounded backward
scan; nothing is ever re-classified.
"""

from typing import MutableSequence

from pyqt_logconsole.models import GroupMarker, LogRecord


class GroupResolver:
    """Back-patches boundary levels as each record is appended."""

    def resolve(self, records: MutableSequence[LogRecord]) -> int:
        """
        Patch levels around the last record of ``records`` (just appended).

        Returns:
            Number of earlier records whose level was overwritten. Listeners
            that already evaluated those records must re-evaluate them.
        """
        if not records:
            return 0

        newest = records[-1]
        group = newest.group

        if group is GroupMarker.END:
            for i in range(len(records) - 2, -1, -1):
                if records[i].group is None:
                    newest.level = records[i].level
                    break
            return 0
        if group is None:
            patched = 0
            for i in range(len(records) - 2, -1, -1):
                previous = records[i]
                if previous.group is None or not previous.group.is_start:
                    break
                previous.level = newest.level
                patched += 1
            return patched

        # start / startCollapsed: filled in when the next content line arrives
        return 0
