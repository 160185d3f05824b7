from enum import Enum, IntEnum
from pydantic import BaseModel, Field
from typing import Optional, List

from constants import LEAGUE_TUPLE_FIELDS, STATUS_LABELS


class LeagueStatus(IntEnum):
    CREATED = 0
    ACTIVE = 1
    SETTLED = 2
    CANCELLED = 3

    @property
    def label(self):
        return STATUS_LABELS[self.value]


class LeagueAction(str, Enum):
    START_EARLY = "StartEarly"
    JOIN = "Join"
    SETTLE = "Settle"
    CLAIM = "Claim"
    REFUND = "Refund"


class League(BaseModel):
    id: int = Field(ge=0)
    creator: str
    entry_fee: int = Field(ge=0)
    duration: int = Field(ge=0)
    max_players: int = Field(ge=0)
    max_picks: int = Field(ge=0)
    house_cut_bps: int = Field(ge=0)
    start_time: int = 0
    end_time: int = 0
    total_pot: int = 0
    status: LeagueStatus = LeagueStatus.CREATED

    @classmethod
    def from_contract_tuple(cls, league_id, values):
        """Build a League from the positional tuple returned by leagues(id)"""
        values = tuple(values)
        if len(values) != len(LEAGUE_TUPLE_FIELDS):
            raise ValueError(
                f"Expected {len(LEAGUE_TUPLE_FIELDS)} league fields, got {len(values)}"
            )
        fields = dict(zip(LEAGUE_TUPLE_FIELDS, values))
        fields["status"] = LeagueStatus(int(fields["status"]))
        return cls(id=league_id, **fields)


class Entry(BaseModel):
    player: str
    picks: List[str] = []
    claimed: bool = False

    @classmethod
    def from_contract_tuple(cls, values):
        player, picks, claimed = values
        return cls(player=player, picks=list(picks), claimed=bool(claimed))


class EntryView(BaseModel):
    player: str
    picks: List[str] = []
    claimed: bool = False
    is_winner: bool = False


class LeagueView(BaseModel):
    league_id: int
    phase: LeagueStatus
    status_label: str
    player_count: int
    is_full: bool
    is_creator: bool
    is_player: bool
    is_winner: bool
    has_ended: bool
    allowed_actions: List[LeagueAction] = []
    estimated_pot: int
    estimated_house_cut: int
    total_pot: int
    countdown: Optional[str] = None
    entries: List[EntryView] = []
    inconsistencies: List[str] = []


class CreateLeagueForm(BaseModel):
    # Human amount, e.g. "100" CLAWD
    entry_fee: str
    duration: int
    max_players: int
    max_picks: int
    house_cut_percent: float = 5
    picks: List[str] = []


class CreateLeagueParams(BaseModel):
    """Arguments for FantasyLeague.createLeague, in contract units"""
    entry_fee: int
    duration: int
    max_players: int
    max_picks: int
    house_cut_bps: int
    picks: List[str]


class JoinLeagueForm(BaseModel):
    league_id: int
    picks: List[str] = []


class PotEstimate(BaseModel):
    params: CreateLeagueParams
    estimated_pot: int
    estimated_house_cut: int
    net_pot: int
    estimated_pot_display: str
    estimated_house_cut_display: str
    by_player_count: List[dict] = []
