import asyncio
import json
import os
from typing import List, Optional, Tuple

from constants import ERC20_ALLOWANCE_ABI, FANTASY_LEAGUE_CONTRACT, TOKEN_CONTRACT
from errors import TransientExternalError, ValidationError
from logger import setup_logger, mask_address
from models import Entry, League, LeagueStatus
from web3_provider import get_web3

logger = setup_logger("helper")

ABI_DIR = os.getenv("ABI_DIR", "abi")


def load_contract_abi(contract_name):
    """Load contract ABI from file"""
    try:
        with open(os.path.join(ABI_DIR, f'{contract_name}.json'), 'r') as f:
            abi = json.load(f)
            # Hardhat/Foundry artifacts wrap the ABI
            if isinstance(abi, dict):
                abi = abi.get("abi", [])
            logger.info(f"{contract_name} contract ABI loaded successfully")
            return abi
    except FileNotFoundError:
        logger.error(f"Could not find the {contract_name} contract ABI file. Make sure the contract is compiled.")
        return []


def get_contract(w3, contract_address, contract_abi):
    """Get contract instance"""
    return w3.eth.contract(
        address=w3.to_checksum_address(contract_address),
        abi=contract_abi
    )


class LeagueContractClient:
    """
    Reads and writes against the FantasyLeague escrow and its stake token.

    Reads are synchronous. Writes are coroutines that run the blocking web3
    calls in a worker thread and raise TransientExternalError on any failure,
    including a reverted receipt.
    """

    def __init__(
        self,
        league_address,
        token_address,
        w3=None,
        league_abi=None,
        token_abi=None,
        account_address=None,
        private_key=None,
        gas=1000000,
    ):
        self.w3 = w3 if w3 is not None else get_web3()
        self.league_address = league_address
        self.token_address = token_address
        self.league_abi = league_abi if league_abi is not None else load_contract_abi(FANTASY_LEAGUE_CONTRACT)
        self.token_abi = token_abi or load_contract_abi(TOKEN_CONTRACT) or ERC20_ALLOWANCE_ABI
        self.account_address = account_address
        self.private_key = private_key
        self.gas = gas

        self.league_contract = get_contract(self.w3, league_address, self.league_abi)
        self.token_contract = get_contract(self.w3, token_address, self.token_abi)

    # Reads

    def _call(self, operation, fn):
        try:
            return fn.call()
        except Exception as e:
            logger.error(f"Error reading {operation}: {str(e)}")
            raise TransientExternalError(f"{operation} failed: {str(e)}", operation) from e

    def read_league(self, league_id) -> League:
        values = self._call(f"leagues({league_id})", self.league_contract.functions.leagues(league_id))
        return League.from_contract_tuple(league_id, values)

    def read_entries(self, league_id) -> List[Entry]:
        raw = self._call(f"getEntries({league_id})", self.league_contract.functions.getEntries(league_id))
        return [Entry.from_contract_tuple(e) for e in raw or []]

    def read_winners(self, league_id) -> List[str]:
        raw = self._call(f"getWinners({league_id})", self.league_contract.functions.getWinners(league_id))
        return list(raw or [])

    def read_allowance(self, owner, spender) -> int:
        try:
            owner_address = self.w3.to_checksum_address(owner)
            spender_address = self.w3.to_checksum_address(spender)
        except ValueError as e:
            raise ValidationError(f"Invalid address: {str(e)}") from e
        fn = self.token_contract.functions.allowance(owner_address, spender_address)
        return int(self._call(f"allowance({mask_address(owner)})", fn))

    def read_league_count(self) -> int:
        return int(self._call("leagueCount", self.league_contract.functions.leagueCount()))

    def read_snapshot(self, league_id) -> Tuple[League, List[Entry], List[str]]:
        league = self.read_league(league_id)
        entries = self.read_entries(league_id)
        winners = self.read_winners(league_id)
        return league, entries, winners

    def list_leagues(self, status: Optional[LeagueStatus] = None) -> List[League]:
        leagues = []
        for league_id in range(self.read_league_count()):
            league = self.read_league(league_id)
            if status is None or league.status == status:
                leagues.append(league)
        return leagues

    # Writes

    def _send(self, operation, fn):
        if not self.account_address:
            raise TransientExternalError("No account configured for writes", operation)

        try:
            sender = self.w3.to_checksum_address(self.account_address)
            if self.private_key:
                tx = fn.build_transaction({
                    'from': sender,
                    'gas': self.gas,
                    'nonce': self.w3.eth.get_transaction_count(sender),
                })
                signed_tx = self.w3.eth.account.sign_transaction(tx, private_key=self.private_key)
                tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            else:
                tx_hash = fn.transact({'from': sender, 'gas': self.gas})

            logger.info(f"{operation} transaction sent, hash: {tx_hash.hex()}")
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        except Exception as e:
            logger.error(f"Error sending {operation}: {str(e)}")
            raise TransientExternalError(f"{operation} failed: {str(e)}", operation) from e

        if receipt.get('status') == 0:
            logger.error(f"{operation} reverted in block {receipt.get('blockNumber')}")
            raise TransientExternalError(f"{operation} reverted", operation)

        logger.info(f"{operation} confirmed in block {receipt.get('blockNumber')}")
        return receipt

    async def _write(self, operation, fn):
        return await asyncio.to_thread(self._send, operation, fn)

    async def write_create_league(self, entry_fee, duration, max_players, max_picks, house_cut_bps, picks) -> int:
        fn = self.league_contract.functions.createLeague(
            entry_fee, duration, max_players, max_picks, house_cut_bps,
            [self.w3.to_checksum_address(p) for p in picks],
        )
        receipt = await self._write("createLeague", fn)
        return self._created_league_id(receipt)

    def _created_league_id(self, receipt):
        has_event = any(
            item.get("type") == "event" and item.get("name") == "LeagueCreated"
            for item in self.league_abi
        )
        if has_event:
            logs = self.league_contract.events.LeagueCreated().process_receipt(receipt)
            if logs:
                return int(logs[0].args.leagueId)
        # Ids are assigned sequentially from zero; a concurrent create can make this wrong
        logger.warning("No LeagueCreated event in receipt, using leagueCount - 1 as the new league id")
        return self.read_league_count() - 1

    async def write_join_league(self, league_id, picks):
        fn = self.league_contract.functions.joinLeague(
            league_id, [self.w3.to_checksum_address(p) for p in picks]
        )
        return await self._write(f"joinLeague({league_id})", fn)

    async def write_start_league(self, league_id):
        return await self._write(f"startLeague({league_id})", self.league_contract.functions.startLeague(league_id))

    async def write_settle_league(self, league_id):
        return await self._write(f"settleLeague({league_id})", self.league_contract.functions.settleLeague(league_id))

    async def write_claim_winnings(self, league_id):
        return await self._write(f"claimWinnings({league_id})", self.league_contract.functions.claimWinnings(league_id))

    async def write_claim_refund(self, league_id):
        return await self._write(f"claimRefund({league_id})", self.league_contract.functions.claimRefund(league_id))

    async def write_approve(self, spender, amount):
        fn = self.token_contract.functions.approve(self.w3.to_checksum_address(spender), amount)
        return await self._write(f"approve({mask_address(spender)})", fn)
