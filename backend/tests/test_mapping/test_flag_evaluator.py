"""
Tests for FlagEvaluator and the flag table.
"""

import itertools
import random

import pytest

from builders import RESIDENCE_UNDER_THREE_YEARS, licence, make_record
from docgen.mapping import flags as F
from docgen.mapping.fields import FieldProjector
from docgen.mapping.flags import FlagEvaluator, FlagSpec, affirmative, default_flag_specs


def _inputs(record):
    projector = FieldProjector()
    return projector.project(record), projector.raw_collections(record)


class TestFlagEvaluator:
    """Test suite for FlagEvaluator."""

    @pytest.fixture
    def evaluator(self):
        return FlagEvaluator()

    def test_all_flags_present(self, evaluator):
        fields, collections = _inputs({})
        result = evaluator.evaluate(fields, collections)

        assert set(result.flags) == {
            F.REPRESENTATIVE_OFFICE,
            F.RESIDENCE_UNDER_THREE_YEARS,
            F.USED_OTHER_NAMES,
            F.HAS_REGULATORY_HISTORY,
            F.HAS_PROPOSED_START_DATE,
            F.PREVIOUSLY_HELD_ROLE,
            F.LICENSED_FUNCTION_SELECTED,
        }
        assert not any(result.flags.values())
        assert result.errors == []

    def test_flags_from_clean_record(self, evaluator):
        fields, collections = _inputs(
            make_record(
                applying_for_rep_office=True,
                residence_duration=RESIDENCE_UNDER_THREE_YEARS,
                used_other_names=True,
                previously_held_role=True,
            )
        )
        flags = evaluator.evaluate(fields, collections).flags

        assert flags[F.REPRESENTATIVE_OFFICE] is True
        assert flags[F.RESIDENCE_UNDER_THREE_YEARS] is True
        assert flags[F.USED_OTHER_NAMES] is True
        assert flags[F.HAS_REGULATORY_HISTORY] is True
        assert flags[F.HAS_PROPOSED_START_DATE] is True
        assert flags[F.PREVIOUSLY_HELD_ROLE] is True
        assert flags[F.LICENSED_FUNCTION_SELECTED] is True

    def test_residence_code_as_numeric_string(self, evaluator):
        fields, collections = _inputs(make_record(residence_duration=str(RESIDENCE_UNDER_THREE_YEARS)))
        assert evaluator.evaluate(fields, collections).flags[F.RESIDENCE_UNDER_THREE_YEARS] is True

    def test_regulatory_history_follows_collection(self, evaluator):
        fields, collections = _inputs(make_record(regulatory=[]))
        assert evaluator.evaluate(fields, collections).flags[F.HAS_REGULATORY_HISTORY] is False

        fields, collections = _inputs(make_record(regulatory=[licence(), licence()]))
        assert evaluator.evaluate(fields, collections).flags[F.HAS_REGULATORY_HISTORY] is True

    @pytest.mark.parametrize("bad", ["true", 1, "yes", 0.0])
    def test_non_boolean_input_defaults_flag_and_records_error(self, evaluator, bad):
        fields, collections = _inputs(make_record(applying_for_rep_office=bad, used_other_names=True))
        result = evaluator.evaluate(fields, collections)

        assert result.flags[F.REPRESENTATIVE_OFFICE] is False
        assert result.flags[F.USED_OTHER_NAMES] is True
        assert [e.flag_name for e in result.errors] == [F.REPRESENTATIVE_OFFICE]

    def test_non_numeric_residence_code_defaults_flag(self, evaluator):
        fields, collections = _inputs(make_record(residence_duration="a while"))
        result = evaluator.evaluate(fields, collections)

        assert result.flags[F.RESIDENCE_UNDER_THREE_YEARS] is False
        assert result.errors[0].flag_name == F.RESIDENCE_UNDER_THREE_YEARS

    def test_evaluation_order_is_irrelevant(self):
        fields, collections = _inputs(
            make_record(applying_for_rep_office=True, used_other_names="bad", regulatory=[])
        )
        expected = FlagEvaluator().evaluate(fields, collections).flags

        specs = default_flag_specs()
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(specs)
            rng.shuffle(shuffled)
            assert FlagEvaluator(shuffled).evaluate(fields, collections).flags == expected

        for perm in itertools.islice(itertools.permutations(specs), 50):
            assert FlagEvaluator(perm).evaluate(fields, collections).flags == expected

    def test_predicate_sees_only_declared_inputs(self):
        seen = {}

        def spy(values):
            seen.update(values)
            return True

        evaluator = FlagEvaluator([FlagSpec("Spy", spy, inputs=("firm_name",), collections=("Citizenships",))])
        fields, collections = _inputs(make_record())
        evaluator.evaluate(fields, collections)

        assert set(seen) == {"firm_name", "Citizenships"}

    def test_duplicate_flag_names_rejected(self):
        spec = FlagSpec("Dup", affirmative("used_other_names"), inputs=("used_other_names",))
        with pytest.raises(ValueError):
            FlagEvaluator([spec, spec])
