import datetime
import logging

logger = logging.getLogger(__name__)


class FixtureScheduler:
    """
    Assign kick-off times to fixtures.

    Each day offers the same evening time slots. A fixture takes the first slot
    where neither team is booked and which comes after both teams' previous
    fixtures, so rounds keep their order. The search runs over twice the
    configured number of days; a fixture that still does not fit takes the
    first free slot after the window and a warning is recorded.
    """

    def __init__(self, start_date, days, time_slots):
        self.start_date = start_date
        self.days = days
        self.time_slots = [self._parse_time(t) for t in time_slots]
        self.booked = {}  # slot index: set of team ids
        self.last_slot = {}  # team id: index of its latest booked slot

    def _parse_time(self, time_str):
        if isinstance(time_str, datetime.time):
            return time_str
        return datetime.datetime.strptime(str(time_str), '%H:%M').time()

    def _slot_datetime(self, index):
        day_offset, slot = divmod(index, len(self.time_slots))
        day = self.start_date + datetime.timedelta(days=day_offset)
        return datetime.datetime.combine(day, self.time_slots[slot])

    def _slot_count(self):
        return self.days * 2 * len(self.time_slots)

    def _is_free(self, index, team_ids):
        taken = self.booked.get(index, set())
        return not any(team_id in taken for team_id in team_ids)

    def _book(self, index, team_ids):
        self.booked.setdefault(index, set()).update(team_ids)
        for team_id in team_ids:
            self.last_slot[team_id] = max(self.last_slot.get(team_id, -1), index)

    def schedule(self, fixtures):
        """Return (fixtures with 'scheduled_at' set, warnings)."""
        warnings = []
        scheduled = []
        for item in fixtures:
            team_ids = (item['home'], item['away'])
            earliest = max(self.last_slot.get(team_id, -1) for team_id in team_ids) + 1
            chosen = None
            for index in range(earliest, self._slot_count()):
                if self._is_free(index, team_ids):
                    chosen = index
                    break

            if chosen is None:
                chosen = max(earliest, self._slot_count())
                while not self._is_free(chosen, team_ids):
                    chosen += 1
                message = (f"Could not schedule {item['home']} vs {item['away']} "
                           f"({item['round'].label}) within {self.days * 2} days; "
                           f"placed on {self._slot_datetime(chosen):%Y-%m-%d %H:%M}.")
                logger.warning(message)
                warnings.append(message)

            self._book(chosen, team_ids)
            scheduled.append(dict(item, scheduled_at=self._slot_datetime(chosen)))
        return scheduled, warnings
