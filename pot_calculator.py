import pandas as pd

from constants import BPS_DENOMINATOR, MIN_PLAYERS

# All amounts are integer base units. Values above int64 are kept as Python
# ints, so the table columns use object dtype.


def estimated_pot(entry_fee: int, max_players: int) -> int:
    """Best-case pot for a full league; the authoritative pot is League.total_pot"""
    return entry_fee * max_players


def house_cut(pot: int, house_cut_bps: int) -> int:
    return pot * house_cut_bps // BPS_DENOMINATOR


def estimated_house_cut(entry_fee: int, max_players: int, house_cut_bps: int) -> int:
    return house_cut(estimated_pot(entry_fee, max_players), house_cut_bps)


def net_pot(pot: int, house_cut_bps: int) -> int:
    return pot - house_cut(pot, house_cut_bps)


def pot_estimate_table(entry_fee: int, max_players: int, house_cut_bps: int) -> pd.DataFrame:
    """
    Pot preview for every player count a league could settle with

    Args:
        entry_fee: Stake per player in base units
        max_players: League capacity
        house_cut_bps: House cut in basis points

    Returns:
        DataFrame with columns players, pot, house_cut, net_pot
    """
    players = list(range(MIN_PLAYERS, max_players + 1))
    pots = [estimated_pot(entry_fee, n) for n in players]

    return pd.DataFrame({
        "players": pd.Series(players, dtype="int64"),
        "pot": pd.Series(pots, dtype=object),
        "house_cut": pd.Series([house_cut(p, house_cut_bps) for p in pots], dtype=object),
        "net_pot": pd.Series([net_pot(p, house_cut_bps) for p in pots], dtype=object),
    })
