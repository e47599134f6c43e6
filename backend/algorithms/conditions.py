"""
Production Conditions
Process parameters per item / press / die / material and the lookup used
by the scheduler to pick a die for a job.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple


@dataclass
class ProductionCondition:
    """One validated press/die combination for an item and material."""
    item_code: str
    press_no: int
    die_no: int
    material: str
    cure_time: float  # minutes per cycle
    pieces_per_cycle_1: float = 0  # single-side operation
    pieces_per_cycle_2: float = 0  # double-side operation

    @property
    def pieces_per_cycle(self) -> float:
        """Output of the better operating mode."""
        return max(self.pieces_per_cycle_1, self.pieces_per_cycle_2)

    @property
    def is_usable(self) -> bool:
        return self.cure_time > 0 and self.pieces_per_cycle > 0

    def to_dict(self) -> Dict:
        return {
            'itemCode': self.item_code,
            'pressNo': self.press_no,
            'dieNo': self.die_no,
            'material': self.material,
            'cureTimeMinutes': self.cure_time,
            'outputPerCycleModeA': self.pieces_per_cycle_1,
            'outputPerCycleModeB': self.pieces_per_cycle_2,
        }


def select_best(conditions: Iterable[ProductionCondition]) -> Optional[ProductionCondition]:
    """
    Pick the highest-throughput condition.

    Throughput is the larger of the two per-cycle outputs. On an exact tie
    the condition listed first wins.
    """
    best = None
    for condition in conditions:
        if best is None or condition.pieces_per_cycle > best.pieces_per_cycle:
            best = condition
    return best


class ConditionIndex:
    """Lookup of production conditions by (item code, press, material)."""

    def __init__(self, conditions: Iterable[ProductionCondition]):
        self.conditions: List[ProductionCondition] = list(conditions)
        self._by_key: Dict[Tuple[str, int, str], List[ProductionCondition]] = {}
        for condition in self.conditions:
            key = (condition.item_code, condition.press_no, condition.material)
            self._by_key.setdefault(key, []).append(condition)

    def __len__(self):
        return len(self.conditions)

    def match(self, item_code: str, press_no: int, material: str) -> List[ProductionCondition]:
        """All conditions for the combination, in input order."""
        return list(self._by_key.get((item_code, press_no, material), []))

    def best_for(self, item_code: str, press_no: int, material: str) -> Optional[ProductionCondition]:
        """
        Best usable condition for a job on a press.

        Returns None when nothing matches or when the best match has a
        non-positive cure time or output; the caller skips the job.
        """
        best = select_best(self.match(item_code, press_no, material))
        if best is None or not best.is_usable:
            return None
        return best

    def presses_for_item(self, item_code: str) -> Set[int]:
        """Presses with at least one condition for the item (any material)."""
        return {c.press_no for c in self.conditions if c.item_code == item_code}

    def press_numbers(self) -> List[int]:
        return sorted({c.press_no for c in self.conditions})
