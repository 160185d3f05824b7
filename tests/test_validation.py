"""
Unit tests for pick validation, bps conversion, token amounts and pot arithmetic.
"""

from __future__ import annotations

import pytest

from errors import ValidationError
from factories import PICK_1, PICK_2, make_league
from models import CreateLeagueForm, JoinLeagueForm
from pot_calculator import estimated_house_cut, estimated_pot, net_pot, pot_estimate_table
from validation import (
    bps_to_percent,
    can_create_league,
    can_submit_picks,
    collect_valid_picks,
    format_token_amount,
    is_valid_pick_address,
    normalize_address,
    parse_token_amount,
    percent_to_bps,
    same_address,
    validate_create_form,
    validate_join_form,
)


def test_pick_address_format() -> None:
    assert is_valid_pick_address("0x" + "a" * 40)
    assert is_valid_pick_address("0x" + "Z" * 40)  # hex digits are not checked
    assert not is_valid_pick_address("0xabc")
    assert not is_valid_pick_address("abcd" + "0" * 38)
    assert not is_valid_pick_address("0x" + "a" * 41)
    assert not is_valid_pick_address(None)


def test_collect_valid_picks_keeps_order_without_truncating() -> None:
    raw = [PICK_1, "bad", PICK_2]
    assert collect_valid_picks(raw, 2) == [PICK_1, PICK_2]
    assert collect_valid_picks(raw, 1) == [PICK_1, PICK_2]
    assert collect_valid_picks([], 1) == []


def test_submission_window() -> None:
    assert not can_submit_picks([], 2)
    assert can_submit_picks([PICK_1], 2)
    assert can_submit_picks([PICK_1, PICK_2], 2)
    assert not can_submit_picks([PICK_1, PICK_2], 1)
    assert can_create_league([PICK_1], 1, 1)
    assert not can_create_league([PICK_1], 1, 0)


def test_address_normalization() -> None:
    assert normalize_address(" 0xABcd ") == "0xabcd"
    assert normalize_address("") is None
    assert normalize_address(None) is None
    assert same_address("0xAB", "0xab")
    assert not same_address(None, None)
    assert not same_address("0xab", None)


def test_percent_bps_conversion() -> None:
    assert percent_to_bps(5) == 500
    assert percent_to_bps(2.5) == 250
    assert percent_to_bps(0.01) == 1
    assert bps_to_percent(500) == 5


def test_token_amounts_use_exact_decimal_math() -> None:
    assert parse_token_amount("100") == 100 * 10**18
    assert parse_token_amount("0.1") == 10**17
    assert parse_token_amount("123456789012.000000000000000001") == 123456789012 * 10**18 + 1
    assert format_token_amount(100 * 10**18) == "100"
    assert format_token_amount(10**17) == "0.1"
    assert format_token_amount(0) == "0"


@pytest.mark.parametrize("amount", ["", "abc", "-1", "0.0000000000000000001"])
def test_bad_token_amounts_raise(amount: str) -> None:
    with pytest.raises(ValidationError):
        parse_token_amount(amount)


def test_pot_arithmetic() -> None:
    fee = 100 * 10**18
    assert estimated_pot(fee, 4) == 400 * 10**18
    assert estimated_house_cut(fee, 4, 500) == 20 * 10**18
    assert net_pot(400 * 10**18, 500) == 380 * 10**18
    # floor division, never rounds up
    assert estimated_house_cut(3, 3, 1000) == 0


def test_pot_estimate_table_has_a_row_per_player_count() -> None:
    df = pot_estimate_table(100 * 10**18, 4, 500)
    assert list(df["players"]) == [2, 3, 4]
    assert list(df.columns) == ["players", "pot", "house_cut", "net_pot"]
    last = df.iloc[-1]
    assert last["pot"] == 400 * 10**18
    assert last["house_cut"] == 20 * 10**18
    assert last["net_pot"] == 380 * 10**18


def _create_form(**overrides) -> CreateLeagueForm:
    fields = dict(
        entry_fee="100",
        duration=86_400,
        max_players=4,
        max_picks=1,
        house_cut_percent=5,
        picks=[PICK_1, ""],
    )
    fields.update(overrides)
    return CreateLeagueForm(**fields)


def test_validate_create_form_returns_contract_params() -> None:
    params = validate_create_form(_create_form(entry_fee="0.5", duration=7 * 86_400, house_cut_percent=2.5))
    assert params.entry_fee == 5 * 10**17
    assert params.duration == 7 * 86_400
    assert params.max_players == 4
    assert params.max_picks == 1
    assert params.house_cut_bps == 250
    assert params.picks == [PICK_1]


@pytest.mark.parametrize(
    "overrides",
    [
        {"entry_fee": "0"},
        {"entry_fee": "abc"},
        {"duration": 0},
        {"duration": 3_600},
        {"max_players": 1},
        {"max_players": 11},
        {"max_picks": 0},
        {"max_picks": 4, "picks": [PICK_1]},
        {"house_cut_percent": 10.5},
        {"picks": ["bad"]},
        {"picks": [PICK_1, PICK_2]},
    ],
)
def test_validate_create_form_rejects(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        validate_create_form(_create_form(**overrides))


def test_validate_create_form_accepts_bounds() -> None:
    params = validate_create_form(_create_form(max_players=10, max_picks=3, house_cut_percent=10))
    assert params.max_players == 10
    assert params.max_picks == 3
    assert params.house_cut_bps == 1000
    assert validate_create_form(_create_form(max_players=2, house_cut_percent=0)).house_cut_bps == 0


def test_validate_join_form_uses_league_pick_limit() -> None:
    league = make_league(max_picks=2)
    assert validate_join_form(JoinLeagueForm(league_id=0, picks=[PICK_1, PICK_2]), league) == [PICK_1, PICK_2]
    with pytest.raises(ValidationError):
        validate_join_form(JoinLeagueForm(league_id=0, picks=["0x12"]), league)
