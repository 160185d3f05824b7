from decimal import Decimal, InvalidOperation, localcontext
from typing import List, Optional, Sequence

from constants import (
    DURATION_CHOICES,
    MAX_HOUSE_CUT_BPS,
    MAX_PICKS,
    MAX_PLAYERS,
    MIN_PLAYERS,
    MIN_PICKS,
    PICK_ADDRESS_LENGTH,
    PICK_ADDRESS_PREFIX,
    TOKEN_DECIMALS,
)
from errors import ValidationError
from logger import setup_logger
from models import CreateLeagueParams

logger = setup_logger("validation")


def normalize_address(address: Optional[str]) -> Optional[str]:
    """Canonical form used for every identity comparison"""
    if address is None:
        return None
    address = address.strip()
    return address.lower() if address else None


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    a, b = normalize_address(a), normalize_address(b)
    return a is not None and a == b


def is_valid_pick_address(value) -> bool:
    # Hex digits and checksum are left to the wallet and the contract
    return (
        isinstance(value, str)
        and len(value) == PICK_ADDRESS_LENGTH
        and value.startswith(PICK_ADDRESS_PREFIX)
    )


def collect_valid_picks(raw_picks: Sequence[str], max_picks: int) -> List[str]:
    """
    Keep the well-formed pick addresses, in their original order.

    The result is not truncated to max_picks; callers check the count with
    can_submit_picks before submitting.
    """
    return [p for p in (raw_picks or []) if is_valid_pick_address(p)]


def can_submit_picks(valid_picks: Sequence[str], max_picks: int) -> bool:
    return MIN_PICKS <= len(valid_picks) <= max_picks


def can_create_league(valid_picks: Sequence[str], max_picks: int, entry_fee: int) -> bool:
    return can_submit_picks(valid_picks, max_picks) and entry_fee > 0


def percent_to_bps(percent) -> int:
    return round(percent * 100)


def bps_to_percent(bps: int) -> float:
    return bps / 100


def parse_token_amount(amount, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a human amount ("100", "0.5") to base units"""
    with localcontext() as ctx:
        ctx.prec = 80
        try:
            value = Decimal(str(amount).strip()).scaleb(decimals)
        except InvalidOperation:
            raise ValidationError(f"Invalid token amount: {amount!r}")
    if not value.is_finite() or value < 0:
        raise ValidationError(f"Invalid token amount: {amount!r}")
    if value != value.to_integral_value():
        raise ValidationError(f"Token amount {amount!r} has more than {decimals} decimals")
    return int(value)


def format_token_amount(base_units: int, decimals: int = TOKEN_DECIMALS) -> str:
    with localcontext() as ctx:
        ctx.prec = 80
        return format(Decimal(base_units).scaleb(-decimals).normalize(), "f")


def require_valid_picks(raw_picks: Sequence[str], max_picks: int) -> List[str]:
    valid_picks = collect_valid_picks(raw_picks, max_picks)
    if not can_submit_picks(valid_picks, max_picks):
        raise ValidationError(
            f"Need between {MIN_PICKS} and {max_picks} valid pick addresses, got {len(valid_picks)}"
        )
    return valid_picks


def validate_create_form(form) -> CreateLeagueParams:
    """
    Check a CreateLeagueForm and convert it to createLeague arguments.

    Bounds follow the create page: 2-10 players, 1-3 picks, a 1 or 7 day
    duration and a 0-10% house cut. Raises ValidationError on the first
    problem found.
    """
    entry_fee = parse_token_amount(form.entry_fee)
    if entry_fee <= 0:
        raise ValidationError("Entry fee must be greater than zero")
    if form.duration not in DURATION_CHOICES:
        raise ValidationError(f"Duration must be one of {', '.join(str(d) for d in DURATION_CHOICES)} seconds")
    if not MIN_PLAYERS <= form.max_players <= MAX_PLAYERS:
        raise ValidationError(f"Max players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
    if not MIN_PICKS <= form.max_picks <= MAX_PICKS:
        raise ValidationError(f"Max picks must be between {MIN_PICKS} and {MAX_PICKS}")

    house_cut_bps = percent_to_bps(form.house_cut_percent)
    if not 0 <= house_cut_bps <= MAX_HOUSE_CUT_BPS:
        raise ValidationError(
            f"House cut must be between 0% and {bps_to_percent(MAX_HOUSE_CUT_BPS):g}%"
        )

    valid_picks = require_valid_picks(form.picks, form.max_picks)
    logger.debug(f"Create form valid: {len(valid_picks)} picks, house cut {house_cut_bps} bps")
    return CreateLeagueParams(
        entry_fee=entry_fee,
        duration=form.duration,
        max_players=form.max_players,
        max_picks=form.max_picks,
        house_cut_bps=house_cut_bps,
        picks=valid_picks,
    )


def validate_join_form(form, league) -> List[str]:
    return require_valid_picks(form.picks, league.max_picks)
