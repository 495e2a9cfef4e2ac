from typing import Dict, Iterable, List, Tuple

from rtree import index

from ..core_math.time_of_day import MINUTES_PER_DAY, parse_time_of_day


def _contiguous_runs(minutes: Iterable[int]) -> List[Tuple[int, int]]:
    """[2355..2359, 0..15] -> [(0, 15), (1435, 1439)]"""
    ordered = sorted(set(minutes))
    runs = []
    for m in ordered:
        if runs and m == runs[-1][1] + 1:
            runs[-1] = (runs[-1][0], m)
        else:
            runs.append((m, m))
    return runs


class TimeLevelIndex:
    """
    Broad phase for candidate lookup: every record is a point at
    (entry minute of day, flight level). A query for a label set becomes one
    box per contiguous minute run, so a window across midnight is two boxes.
    """

    def __init__(self):
        p = index.Property()
        p.dimension = 2
        self.idx = index.Index(properties=p)
        self.record_map: Dict[int, object] = {}
        self.bounds_map: Dict[int, Tuple[float, float, float, float]] = {}
        self.counter = 0

    def insert(self, record, entry_time: str, flight_level: int) -> int:
        minute = parse_time_of_day(entry_time)
        bounds = (minute, flight_level, minute, flight_level)

        record_id = self.counter
        self.idx.insert(record_id, bounds)
        self.record_map[record_id] = record
        self.bounds_map[record_id] = bounds
        self.counter += 1
        return record_id

    def remove(self, record_id: int):
        bounds = self.bounds_map.pop(record_id, None)
        if bounds is None:
            return
        self.idx.delete(record_id, bounds)
        del self.record_map[record_id]

    def query(self, flight_level: int, time_labels: Iterable[str]) -> List[object]:
        minutes = [parse_time_of_day(t) for t in time_labels]
        if not minutes:
            return []

        matches = set()
        for start, end in _contiguous_runs(m % MINUTES_PER_DAY for m in minutes):
            matches.update(self.idx.intersection((start, flight_level, end, flight_level)))

        # Insertion order
        return [self.record_map[i] for i in sorted(matches)]

    def __len__(self):
        return len(self.record_map)
