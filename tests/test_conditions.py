"""Tests for production condition lookup and die selection."""

from algorithms.conditions import ConditionIndex, ProductionCondition, select_best


class TestProductionCondition:
    """Tests for a single condition."""

    def test_pieces_per_cycle_uses_better_mode(self, make_condition):
        condition = make_condition(ppc1=4, ppc2=8)
        assert condition.pieces_per_cycle == 8

    def test_unusable_without_cure_time(self, make_condition):
        assert make_condition(cure_time=0).is_usable is False
        assert make_condition(cure_time=-5).is_usable is False

    def test_unusable_without_output(self, make_condition):
        assert make_condition(ppc1=0, ppc2=0).is_usable is False

    def test_to_dict_wire_names(self, make_condition):
        data = make_condition(ppc1=4, ppc2=8).to_dict()
        assert data['cureTimeMinutes'] == 10
        assert data['outputPerCycleModeA'] == 4
        assert data['outputPerCycleModeB'] == 8


class TestSelectBest:
    """Tests for highest-throughput selection."""

    def test_highest_output_wins(self, make_condition):
        low = make_condition(die_no=1, ppc1=4)
        high = make_condition(die_no=2, ppc1=2, ppc2=6)
        assert select_best([low, high]) is high

    def test_tie_first_listed_wins(self, make_condition):
        first = make_condition(die_no=1, ppc1=5)
        second = make_condition(die_no=2, ppc2=5)
        assert select_best([first, second]) is first
        assert select_best([second, first]) is second

    def test_empty_returns_none(self):
        assert select_best([]) is None


class TestConditionIndex:
    """Tests for condition lookup."""

    def test_match_filters_item_press_material(self, sample_conditions):
        index = ConditionIndex(sample_conditions)
        matches = index.match('ITEM-A', 1, 'EPDM')
        assert [c.die_no for c in matches] == [1, 2]
        assert index.match('ITEM-A', 1, 'NBR') == []
        assert index.match('ITEM-A', 3, 'EPDM') == []

    def test_best_for_picks_highest_throughput(self, sample_conditions):
        index = ConditionIndex(sample_conditions)
        assert index.best_for('ITEM-A', 1, 'EPDM').die_no == 2

    def test_best_for_unusable_best_is_none(self, make_condition):
        index = ConditionIndex([make_condition(cure_time=0, ppc1=10)])
        assert index.best_for('ITEM-A', 1, 'EPDM') is None

    def test_best_for_no_match_is_none(self, sample_conditions):
        index = ConditionIndex(sample_conditions)
        assert index.best_for('UNKNOWN', 1, 'EPDM') is None

    def test_presses_for_item(self, sample_conditions):
        index = ConditionIndex(sample_conditions)
        assert index.presses_for_item('ITEM-A') == {1, 2}
        assert index.presses_for_item('ITEM-B') == {2}

    def test_press_numbers_sorted(self, make_condition):
        index = ConditionIndex([make_condition(press_no=5), make_condition(press_no=2)])
        assert index.press_numbers() == [2, 5]
        assert len(index) == 2

    def test_accepts_generator(self):
        conditions = (ProductionCondition('X', 1, d, 'M', 10, 1) for d in range(3))
        assert len(ConditionIndex(conditions)) == 3
