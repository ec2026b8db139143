import logging

import pytest

from resource_usage.config import MAX_WEIRD_WEEK, WEIRD_WEEK_COUNT_LOOKUP
from resource_usage.weeks import (
    decode_week_key,
    encode_week_key,
    find_resource_period,
    gen_all_weeks,
    is_encodable_week,
    is_supported_year,
    is_valid_week,
    weeks_in_year,
)


def test_encode_week_key_sorts_chronologically():
    assert encode_week_key(2020, 53) < encode_week_key(2021, 1) < encode_week_key(2021, 10)
    assert encode_week_key(2023, 7) == 202307


def test_decode_inverts_encode_for_every_valid_week():
    for year in range(2018, MAX_WEIRD_WEEK + 1):
        for week in range(1, weeks_in_year(year) + 1):
            assert decode_week_key(encode_week_key(year, week)) == (year, week)


@pytest.mark.parametrize("year", sorted(WEIRD_WEEK_COUNT_LOOKUP))
def test_long_years_have_53_weeks(year):
    assert weeks_in_year(year) == 53


def test_other_supported_years_have_52_weeks():
    for year in range(1990, MAX_WEIRD_WEEK + 1):
        if year not in WEIRD_WEEK_COUNT_LOOKUP:
            assert weeks_in_year(year) == 52


def test_years_past_table_default_to_52_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="resource_usage.weeks"):
        assert weeks_in_year(2060) == 52

    assert not is_supported_year(2060)
    assert is_supported_year(MAX_WEIRD_WEEK)
    assert "2060" in caplog.text


def test_is_valid_week():
    assert is_valid_week(2020, 53)
    assert not is_valid_week(2021, 53)
    assert not is_valid_week(2021, 0)


def test_find_resource_period_across_groups():
    usages = [{202310: 1.0, 202301: 2.0}, {}, {202252: 4.0}]

    assert find_resource_period(usages) == (202252, 202310)


def test_find_resource_period_without_data():
    assert find_resource_period([{}, {}]) is None
    assert find_resource_period([]) is None


def test_gen_all_weeks_rolls_over_long_year():
    week_keys, warnings = gen_all_weeks(202052, 202102)

    assert week_keys == [202052, 202053, 202101, 202102]
    assert warnings == []


def test_gen_all_weeks_rolls_over_short_year():
    week_keys, _ = gen_all_weeks(202150, 202203)

    assert week_keys == [202150, 202151, 202152, 202201, 202202, 202203]


def test_gen_all_weeks_single_week():
    assert gen_all_weeks(202310, 202310) == ([202310], [])


def test_gen_all_weeks_is_gap_free_and_ascending():
    week_keys, _ = gen_all_weeks(201901, 202101)

    assert len(week_keys) == 52 + 53 + 1
    assert week_keys[0] == 201901
    assert week_keys[-1] == 202101
    assert all(a < b for a, b in zip(week_keys, week_keys[1:]))
    for previous, current in zip(week_keys, week_keys[1:]):
        year, week = decode_week_key(previous)
        if week == weeks_in_year(year):
            assert current == encode_week_key(year + 1, 1)
        else:
            assert current == previous + 1


def test_gen_all_weeks_stops_at_year_limit():
    week_keys, warnings = gen_all_weeks(299952, 300002)

    assert week_keys == [299952]
    assert [w['kind'] for w in warnings] == ["unsupported-year", "week-generation-runaway"]
    assert warnings[-1]['week_key'] == 300001


def test_gen_all_weeks_flags_unsupported_years_once():
    _, warnings = gen_all_weeks(205550, 205602)

    assert [w['week_key'] for w in warnings] == [205550, 205601]


def test_gen_all_weeks_checks_each_year_once(caplog):
    with caplog.at_level(logging.WARNING, logger="resource_usage.weeks"):
        gen_all_weeks(205550, 205602)

    messages = [r.getMessage() for r in caplog.records if "enough data" in r.getMessage()]
    assert messages == [
        "Week count lookup does not contain enough data for year: 2055",
        "Week count lookup does not contain enough data for year: 2056",
    ]


def test_is_encodable_week():
    assert is_encodable_week(0)
    assert is_encodable_week(99)
    assert not is_encodable_week(100)
