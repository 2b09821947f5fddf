import pytest

from retainly.clock import DAY_MS
from retainly.errors import ValidationError
from retainly.models.review_item import ReviewItem
from retainly.services.scheduler import (
    EASE_MAX,
    EASE_MIN,
    check_quality,
    compute_next,
)

from conftest import T0


def _item(**overrides) -> ReviewItem:
    fields = dict(
        id=1,
        prompt="der Hund",
        answer="the dog",
        created_at=T0 - 10 * DAY_MS,
        next_review_at=T0 - 10 * DAY_MS,
    )
    fields.update(overrides)
    return ReviewItem(**fields)


class TestScenarios:
    def test_first_success_on_new_item(self):
        result = compute_next(_item(interval_days=0, ease_factor=2.5), 4, T0)

        assert result.interval_days == 1
        assert result.ease_factor == 2.5
        assert result.next_review_at == T0 + DAY_MS

    def test_failure_after_graduation(self):
        result = compute_next(_item(interval_days=6, ease_factor=2.0), 2, T0)

        assert result.ease_factor == pytest.approx(1.8)
        assert result.interval_days == 1
        assert result.next_review_at == T0 + DAY_MS

    def test_pass_grows_interval_geometrically(self):
        result = compute_next(_item(interval_days=6, ease_factor=2.0), 3, T0)

        assert result.ease_factor == 2.0
        assert result.interval_days == 12
        assert result.next_review_at == T0 + 12 * DAY_MS


class TestIntervals:
    def test_second_success_uses_graduation_gap(self):
        result = compute_next(_item(interval_days=1, ease_factor=2.5), 3, T0)
        assert result.interval_days == 6

    def test_growth_uses_updated_ease(self):
        # ease 2.4 -> 2.5 on quality 4; 10 * 2.5 = 25, not 10 * 2.4 = 24
        result = compute_next(_item(interval_days=10, ease_factor=2.4), 4, T0)
        assert result.ease_factor == 2.5
        assert result.interval_days == 25

    @pytest.mark.parametrize("interval", [0, 1, 6, 40, 365])
    @pytest.mark.parametrize("quality", [1, 2])
    def test_failure_always_resets_to_one_day(self, interval, quality):
        result = compute_next(_item(interval_days=interval), quality, T0)
        assert result.interval_days == 1

    def test_due_time_counts_from_review_instant(self):
        item = _item(interval_days=6, ease_factor=2.0, next_review_at=T0 + 5 * DAY_MS)
        result = compute_next(item, 3, T0 + 1234)
        assert result.next_review_at == T0 + 1234 + 12 * DAY_MS


class TestEase:
    def test_ease_never_leaves_bounds(self):
        item = _item()
        for quality in [1] * 20 + [4] * 20 + [2, 4, 1, 3] * 10:
            item = compute_next(item, quality, T0)
            assert EASE_MIN <= item.ease_factor <= EASE_MAX
            assert item.interval_days >= 0
            assert item.next_review_at >= T0

    def test_repeated_failures_settle_on_minimum(self):
        item = _item(ease_factor=2.5)
        for _ in range(10):
            item = compute_next(item, 1, T0)
        assert item.ease_factor == EASE_MIN

    def test_quality_three_keeps_ease(self):
        assert compute_next(_item(ease_factor=1.7), 3, T0).ease_factor == 1.7


class TestPurity:
    def test_same_inputs_same_output(self):
        item = _item(interval_days=6, ease_factor=2.2)
        assert compute_next(item, 4, T0) == compute_next(item, 4, T0)

    def test_input_item_untouched(self):
        item = _item(interval_days=6, ease_factor=2.0)
        compute_next(item, 1, T0)
        assert item.interval_days == 6
        assert item.ease_factor == 2.0

    def test_identity_fields_preserved(self):
        item = _item(note="animal")
        result = compute_next(item, 4, T0)
        assert (result.id, result.prompt, result.answer, result.note, result.created_at) == (
            item.id,
            item.prompt,
            item.answer,
            item.note,
            item.created_at,
        )


class TestQualityValidation:
    @pytest.mark.parametrize("quality", [0, 5, -1, 100])
    def test_out_of_scale_rejected(self, quality):
        with pytest.raises(ValidationError):
            compute_next(_item(), quality, T0)

    @pytest.mark.parametrize("quality", [3.0, "3", True, None])
    def test_non_integer_rejected(self, quality):
        with pytest.raises(ValidationError):
            check_quality(quality)

    @pytest.mark.parametrize("quality", [1, 2, 3, 4])
    def test_scale_accepted(self, quality):
        assert check_quality(quality) == quality
