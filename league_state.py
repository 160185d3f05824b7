"""
League lifecycle state model.

Every view of a league (list card, detail page, API response) is derived here
from one on-chain snapshot and the current time. Nothing in this module does
I/O or keeps state between calls.
"""
from typing import Iterable, List, Optional, Sequence

from constants import COUNTDOWN_ENDED, MIN_PLAYERS
from errors import InconsistentSnapshotError
from logger import setup_logger
from models import Entry, EntryView, League, LeagueAction, LeagueStatus, LeagueView
from pot_calculator import estimated_house_cut, estimated_pot
from validation import normalize_address, same_address

logger = setup_logger("league_state")


def check_snapshot(
    league: League,
    entries: Optional[Sequence[Entry]],
    winners: Optional[Iterable[str]],
):
    """
    Raise InconsistentSnapshotError if the snapshot breaks a lifecycle invariant.

    These invariants are enforced by the contract; a violation means a stale
    or broken read, not a user error. entries/winners of None have not been
    loaded yet, so the checks that need them are skipped.
    """
    problems = []
    status = league.status

    # A league cancelled before activation keeps end_time == 0
    if status == LeagueStatus.CREATED and league.end_time != 0:
        problems.append(f"end_time={league.end_time} set on a Created league")
    if status in (LeagueStatus.ACTIVE, LeagueStatus.SETTLED) and league.end_time == 0:
        problems.append(f"end_time is 0 on a {status.label} league")

    if entries is not None and len(entries) > league.max_players:
        problems.append(f"{len(entries)} entries exceed max_players={league.max_players}")

    if winners is not None:
        winner_set = {normalize_address(w) for w in winners}
        if status == LeagueStatus.SETTLED and not winner_set:
            problems.append("league is Settled but has no winners")
        if winner_set and status != LeagueStatus.SETTLED:
            problems.append(f"winners present while status is {status.label}")
        if entries is not None:
            entrant_set = {normalize_address(e.player) for e in entries}
            if not winner_set <= entrant_set:
                problems.append("winners include addresses that never entered")

    if problems:
        raise InconsistentSnapshotError(league.id, problems)


def pot_diagnostics(league: League, entries: Optional[Sequence[Entry]]) -> List[str]:
    """
    Compare total_pot with the stakes implied by the entries.

    total_pot is derivable and not trusted on its own, so a mismatch is only
    reported, never used to withhold actions.
    """
    # Settlement pays the pot out
    if entries is None or league.status not in (LeagueStatus.CREATED, LeagueStatus.ACTIVE):
        return []
    expected_pot = league.entry_fee * len(entries)
    if league.total_pot != expected_pot:
        return [f"total_pot={league.total_pot} but {len(entries)} entries imply {expected_pot}"]
    return []


def has_ended(league: League, now_seconds: int) -> bool:
    return (
        league.status == LeagueStatus.ACTIVE
        and league.end_time > 0
        and now_seconds >= league.end_time
    )


def format_countdown(end_time: int, now_seconds: int) -> str:
    """Render the time left as "[Nd ]HH:MM:SS", or "Ended" once it runs out."""
    remaining = end_time - now_seconds
    if remaining <= 0:
        return COUNTDOWN_ENDED

    days = remaining // 86400
    hours = (remaining % 86400) // 3600
    minutes = (remaining % 3600) // 60
    seconds = remaining % 60

    clock = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{days}d {clock}" if days > 0 else clock


def _viewer_entry(entries: Sequence[Entry], viewer: Optional[str]) -> Optional[Entry]:
    return next((e for e in entries if same_address(e.player, viewer)), None)


def allowed_actions(
    league: League,
    player_count: int,
    is_creator: bool,
    viewer_entry: Optional[Entry],
    is_winner: bool,
    ended: bool,
    viewer_present: bool,
) -> List[LeagueAction]:
    actions = []
    status = league.status
    is_player = viewer_entry is not None
    is_full = player_count >= league.max_players

    if status == LeagueStatus.CREATED:
        if is_creator and player_count >= MIN_PLAYERS:
            actions.append(LeagueAction.START_EARLY)
        if viewer_present and not is_full and not is_player:
            actions.append(LeagueAction.JOIN)
    if ended:
        actions.append(LeagueAction.SETTLE)
    if status == LeagueStatus.SETTLED and is_winner and is_player and not viewer_entry.claimed:
        actions.append(LeagueAction.CLAIM)
    if status == LeagueStatus.CANCELLED and is_player and not viewer_entry.claimed:
        actions.append(LeagueAction.REFUND)
    return actions


def derive(
    league: League,
    entries: Optional[Sequence[Entry]],
    winners: Optional[Iterable[str]],
    now_seconds: int,
    viewer: Optional[str] = None,
) -> LeagueView:
    """
    Derive the phase-aware view of a league for one viewer at one instant.

    Args:
        league: League snapshot
        entries: Entries snapshot, None when not loaded yet
        winners: Winner addresses, None when not loaded yet
        now_seconds: Current unix time
        viewer: Connected account, None when no wallet is connected

    Returns:
        LeagueView; allowed_actions is empty for inconsistent snapshots
    """
    loaded_entries = list(entries) if entries is not None else None
    loaded_winners = list(winners) if winners is not None else None
    entries = loaded_entries or []
    winners = loaded_winners or []
    viewer = normalize_address(viewer)

    player_count = len(entries)
    viewer_entry = _viewer_entry(entries, viewer)
    is_creator = same_address(league.creator, viewer)
    is_winner = any(same_address(w, viewer) for w in winners)
    ended = has_ended(league, now_seconds)

    inconsistencies = pot_diagnostics(league, loaded_entries)
    if inconsistencies:
        logger.warning(f"League {league.id}: {inconsistencies[0]}")
    try:
        check_snapshot(league, loaded_entries, loaded_winners)
        actions = allowed_actions(
            league, player_count, is_creator, viewer_entry, is_winner, ended, viewer is not None
        )
    except InconsistentSnapshotError as e:
        logger.warning(str(e))
        inconsistencies = inconsistencies + e.problems
        actions = []

    countdown = None
    if league.status == LeagueStatus.ACTIVE and league.end_time > 0:
        countdown = format_countdown(league.end_time, now_seconds)

    return LeagueView(
        league_id=league.id,
        phase=league.status,
        status_label=league.status.label,
        player_count=player_count,
        is_full=player_count >= league.max_players,
        is_creator=is_creator,
        is_player=viewer_entry is not None,
        is_winner=is_winner,
        has_ended=ended,
        allowed_actions=actions,
        estimated_pot=estimated_pot(league.entry_fee, league.max_players),
        estimated_house_cut=estimated_house_cut(league.entry_fee, league.max_players, league.house_cut_bps),
        total_pot=league.total_pot,
        countdown=countdown,
        entries=[
            EntryView(
                player=e.player,
                picks=list(e.picks),
                claimed=e.claimed,
                is_winner=any(same_address(w, e.player) for w in winners),
            )
            for e in entries
        ],
        inconsistencies=inconsistencies,
    )


def filter_by_status(leagues: Iterable[League], status: Optional[LeagueStatus] = None) -> List[League]:
    """Leagues matching one status tab; None keeps every league"""
    if status is None:
        return list(leagues)
    return [league for league in leagues if league.status == status]
