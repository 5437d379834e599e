from typing import Iterable, List


class AvailabilityResolver:
    """Subtracts committed slots from a candidate grid."""

    def resolve(self, candidate_slots: Iterable[str], booked_slots: Iterable[str]) -> List[str]:
        """Return candidates that are not booked, in candidate order."""
        booked = set(booked_slots)
        return [slot for slot in candidate_slots if slot not in booked]
