from fastapi import Depends, FastAPI, HTTPException, Query
import asyncio
import os
import time
from dotenv import load_dotenv
from typing import List, Optional

from constants import TOKEN_SYMBOL
from errors import TransientExternalError, ValidationError
from helper import LeagueContractClient
from league_state import derive
from logger import setup_logger, mask_address
from models import CreateLeagueForm, JoinLeagueForm, LeagueAction, LeagueStatus, LeagueView, PotEstimate
from pot_calculator import estimated_house_cut, estimated_pot, net_pot, pot_estimate_table
from transaction_gate import GateDecision, evaluate_gate
from validation import format_token_amount, is_valid_pick_address, validate_create_form, validate_join_form
from web3_provider import required_chain

# Initialize logger
logger = setup_logger('league_api')

# Load environment variables from .env file
load_dotenv()
logger.info("Environment variables loaded")

# Configuration
PRIVATE_KEY = os.getenv("PRIVATE_KEY")
ACCOUNT_ADDRESS = os.getenv("ACCOUNT_ADDRESS")
FANTASY_LEAGUE_ADDRESS = os.getenv("FANTASY_LEAGUE_ADDRESS")
CLAWD_TOKEN_ADDRESS = os.getenv("CLAWD_TOKEN_ADDRESS")
SETTLE_KEEPER_ENABLED = os.getenv("SETTLE_KEEPER_ENABLED", "0") == "1"
SETTLE_KEEPER_INTERVAL = int(os.getenv("SETTLE_KEEPER_INTERVAL", "60"))

# Log configuration (without exposing private key)
if ACCOUNT_ADDRESS:
    logger.info(f"Configuration loaded: ACCOUNT_ADDRESS={mask_address(ACCOUNT_ADDRESS)}, FANTASY_LEAGUE_ADDRESS={FANTASY_LEAGUE_ADDRESS}")
else:
    logger.warning("ACCOUNT_ADDRESS not set in environment variables, settle endpoint will fail")

# Initialize FastAPI app
app = FastAPI()
logger.info("FastAPI application initialized")

_client = None


def get_league_client() -> LeagueContractClient:
    global _client
    if _client is None:
        if not FANTASY_LEAGUE_ADDRESS or not CLAWD_TOKEN_ADDRESS:
            logger.error("FANTASY_LEAGUE_ADDRESS or CLAWD_TOKEN_ADDRESS not set")
            raise HTTPException(status_code=503, detail="League contract is not configured")
        _client = LeagueContractClient(
            FANTASY_LEAGUE_ADDRESS,
            CLAWD_TOKEN_ADDRESS,
            account_address=ACCOUNT_ADDRESS,
            private_key=PRIVATE_KEY,
        )
    return _client


def now_seconds() -> int:
    return int(time.time())


def _league_view(client, league_id, viewer, now):
    try:
        league, entries, winners = client.read_snapshot(league_id)
    except TransientExternalError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return derive(league, entries, winners, now, viewer)


@app.get("/")
async def root():
    logger.info("Root endpoint accessed")
    return {"message": "CLAWD Fantasy League API"}


# Endpoints doing blocking contract reads are plain `def` so FastAPI runs
# them in its threadpool

@app.get("/api/leagues", response_model=List[LeagueView])
def get_leagues(
    status: Optional[LeagueStatus] = None,
    viewer: Optional[str] = None,
    client: LeagueContractClient = Depends(get_league_client),
):
    logger.info(f"Getting leagues with status filter {status}")
    try:
        leagues = client.list_leagues(status)
        now = now_seconds()
        return [
            derive(league, client.read_entries(league.id), client.read_winners(league.id), now, viewer)
            for league in leagues
        ]
    except TransientExternalError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/api/leagues/{league_id}", response_model=LeagueView)
def get_league(
    league_id: int,
    viewer: Optional[str] = None,
    client: LeagueContractClient = Depends(get_league_client),
):
    logger.info(f"Getting league {league_id}")
    return _league_view(client, league_id, viewer, now_seconds())


@app.get("/api/leagues/{league_id}/gate", response_model=GateDecision)
def get_join_gate(
    league_id: int,
    owner: str,
    chain_id: Optional[int] = None,
    picks: List[str] = Query(default=[]),
    client: LeagueContractClient = Depends(get_league_client),
):
    """Next step of the join flow for one wallet"""
    if not is_valid_pick_address(owner):
        raise HTTPException(status_code=400, detail=f"Invalid owner address: {owner}")

    required_chain_id, chain_name = required_chain()
    try:
        league = client.read_league(league_id)
        allowance = client.read_allowance(owner, client.league_address)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransientExternalError as e:
        raise HTTPException(status_code=502, detail=str(e))

    try:
        validate_join_form(JoinLeagueForm(league_id=league_id, picks=picks), league)
        picks_ok = True
    except ValidationError as e:
        logger.info(f"Join picks not submittable for league {league_id}: {str(e)}")
        picks_ok = False

    return evaluate_gate(
        connected_chain_id=chain_id,
        required_chain_id=required_chain_id,
        allowance=allowance,
        amount=league.entry_fee,
        execute_label="Join League",
        disabled=not picks_ok,
        spender=client.league_address,
        required_network_name=chain_name,
    )


@app.post("/api/leagues/validate", response_model=PotEstimate)
async def validate_league(form: CreateLeagueForm):
    logger.info("Validating create league form")
    try:
        params = validate_create_form(form)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    pot = estimated_pot(params.entry_fee, params.max_players)
    house_cut = estimated_house_cut(params.entry_fee, params.max_players, params.house_cut_bps)
    table = pot_estimate_table(params.entry_fee, params.max_players, params.house_cut_bps)
    return PotEstimate(
        params=params,
        estimated_pot=pot,
        estimated_house_cut=house_cut,
        net_pot=net_pot(pot, params.house_cut_bps),
        estimated_pot_display=f"{format_token_amount(pot)} {TOKEN_SYMBOL}",
        estimated_house_cut_display=f"{format_token_amount(house_cut)} {TOKEN_SYMBOL}",
        by_player_count=table.to_dict("records"),
    )


@app.post("/api/leagues/{league_id}/settle")
async def settle_league(
    league_id: int,
    client: LeagueContractClient = Depends(get_league_client),
):
    logger.info(f"Settle requested for league {league_id}")
    view = await asyncio.to_thread(_league_view, client, league_id, None, now_seconds())
    if LeagueAction.SETTLE not in view.allowed_actions:
        raise HTTPException(status_code=409, detail=f"League {league_id} cannot be settled yet")

    try:
        receipt = await client.write_settle_league(league_id)
    except TransientExternalError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {"message": f"League {league_id} settled", "block_number": receipt.get("blockNumber")}


def _active_snapshots(client):
    return [
        (league, client.read_entries(league.id), client.read_winners(league.id))
        for league in client.list_leagues(LeagueStatus.ACTIVE)
    ]


async def settle_ended_leagues(client):
    """Settle every Active league whose timer has run out. Returns the settled ids."""
    settled = []
    snapshots = await asyncio.to_thread(_active_snapshots, client)
    now = now_seconds()
    for league, entries, winners in snapshots:
        view = derive(league, entries, winners, now)
        if LeagueAction.SETTLE not in view.allowed_actions:
            continue
        try:
            await client.write_settle_league(league.id)
            settled.append(league.id)
            logger.info(f"Keeper settled league {league.id}")
        except TransientExternalError as e:
            # Left for the next cycle
            logger.error(f"Keeper failed to settle league {league.id}: {str(e)}")
    return settled


async def settle_keeper(client, interval=SETTLE_KEEPER_INTERVAL):
    logger.info(f"Starting settle keeper, polling every {interval}s")
    while True:
        try:
            await settle_ended_leagues(client)
            await asyncio.sleep(interval)
        except Exception as e:
            logger.error(f"Error in settle keeper: {str(e)}")
            # Sleep longer on error
            await asyncio.sleep(interval * 3)


@app.on_event("startup")
async def startup_event():
    if not SETTLE_KEEPER_ENABLED:
        logger.info("Settle keeper disabled")
        return
    logger.info("Application starting up - launching settle keeper")
    app.state.settle_keeper_task = asyncio.create_task(settle_keeper(get_league_client()))


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "settle_keeper_task", None)
    if task is not None:
        logger.info("Stopping settle keeper")
        task.cancel()
