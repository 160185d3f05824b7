TOKEN_SYMBOL = "CLAWD"
TOKEN_DECIMALS = 18

# Basis points: 1 bps = 0.01%
BPS_DENOMINATOR = 10_000
MAX_HOUSE_CUT_BPS = 1_000  # 10%

MIN_PLAYERS = 2
MAX_PLAYERS = 10
MIN_PICKS = 1
MAX_PICKS = 3

ONE_DAY = 86_400
SEVEN_DAYS = 7 * ONE_DAY
DURATION_CHOICES = (ONE_DAY, SEVEN_DAYS)

PICK_ADDRESS_LENGTH = 42
PICK_ADDRESS_PREFIX = "0x"

COUNTDOWN_ENDED = "Ended"

STATUS_LABELS = ["Created", "Active", "Settled", "Cancelled"]

# Order of the values returned by FantasyLeague.leagues(id)
LEAGUE_TUPLE_FIELDS = (
    "creator",
    "entry_fee",
    "duration",
    "max_players",
    "max_picks",
    "house_cut_bps",
    "end_time",
    "total_pot",
    "start_time",
    "status",
)

FANTASY_LEAGUE_CONTRACT = "FantasyLeague"
TOKEN_CONTRACT = "MockERC20"

# allowance/approve subset, used when no compiled token ABI is on disk
ERC20_ALLOWANCE_ABI = [
    {"inputs":[{"internalType":"address","name":"owner","type":"address"},{"internalType":"address","name":"spender","type":"address"}],"name":"allowance","outputs":[{"internalType":"uint256","name":"","type":"uint256"}],"stateMutability":"view","type":"function"},
    {"inputs":[{"internalType":"address","name":"spender","type":"address"},{"internalType":"uint256","name":"amount","type":"uint256"}],"name":"approve","outputs":[{"internalType":"bool","name":"","type":"bool"}],"stateMutability":"nonpayable","type":"function"},
]
