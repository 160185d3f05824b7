"""
API tests with the contract client replaced by an in-memory fake.
"""

from __future__ import annotations

import asyncio
import inspect

import pytest
from fastapi.testclient import TestClient

import main
from errors import TransientExternalError
from factories import ALICE, BOB, CREATOR, DURATION, PICK_1, START, make_entry, make_league
from models import LeagueStatus

END = START + DURATION
LEAGUE_ADDRESS = "0x" + "9" * 40


class FakeLeagueClient:
    league_address = LEAGUE_ADDRESS

    def __init__(self, leagues, entries=None, winners=None, allowance=0, fail_writes=False):
        self.leagues = {lg.id: lg for lg in leagues}
        self.entries = entries or {}
        self.winners = winners or {}
        self.allowance = allowance
        self.fail_writes = fail_writes
        self.settled = []

    def read_league(self, league_id):
        if league_id not in self.leagues:
            raise TransientExternalError(f"leagues({league_id}) reverted", "leagues")
        return self.leagues[league_id]

    def read_entries(self, league_id):
        return self.entries.get(league_id, [])

    def read_winners(self, league_id):
        return self.winners.get(league_id, [])

    def read_snapshot(self, league_id):
        return self.read_league(league_id), self.read_entries(league_id), self.read_winners(league_id)

    def read_allowance(self, owner, spender):
        return self.allowance

    def list_leagues(self, status=None):
        return [lg for lg in self.leagues.values() if status is None or lg.status == status]

    async def write_settle_league(self, league_id):
        if self.fail_writes:
            raise TransientExternalError("settleLeague reverted", "settleLeague")
        self.settled.append(league_id)
        return {"status": 1, "blockNumber": 99}


@pytest.fixture
def fake():
    return FakeLeagueClient(
        [
            make_league(id=0, players=1),
            make_league(LeagueStatus.ACTIVE, id=1, players=2),
            make_league(LeagueStatus.SETTLED, id=2, players=2),
        ],
        entries={
            0: [make_entry(CREATOR)],
            1: [make_entry(ALICE), make_entry(BOB)],
            2: [make_entry(ALICE), make_entry(BOB)],
        },
        winners={2: [ALICE]},
    )


@pytest.fixture
def api(fake, monkeypatch):
    monkeypatch.setattr(main, "now_seconds", lambda: END)
    main.app.dependency_overrides[main.get_league_client] = lambda: fake
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def test_list_leagues_filters_by_status(api) -> None:
    all_leagues = api.get("/api/leagues").json()
    assert [lg["league_id"] for lg in all_leagues] == [0, 1, 2]

    active = api.get("/api/leagues", params={"status": 1}).json()
    assert [lg["league_id"] for lg in active] == [1]
    assert active[0]["allowed_actions"] == ["Settle"]
    assert active[0]["countdown"] == "Ended"


def test_league_view_for_winner(api) -> None:
    response = api.get("/api/leagues/2", params={"viewer": ALICE.lower()})
    assert response.status_code == 200
    body = response.json()
    assert body["status_label"] == "Settled"
    assert body["is_winner"] is True
    assert body["allowed_actions"] == ["Claim"]
    assert [(e["player"], e["is_winner"]) for e in body["entries"]] == [(ALICE, True), (BOB, False)]


def test_unknown_league_is_bad_gateway(api) -> None:
    assert api.get("/api/leagues/9").status_code == 502


def test_join_gate(api, fake) -> None:
    chain_id, _ = main.required_chain()
    response = api.get(
        "/api/leagues/0/gate",
        params={"owner": ALICE, "chain_id": chain_id, "picks": [PICK_1]},
    )
    body = response.json()
    assert body["step"] == "ApprovalRequired"
    assert body["action"]["spender"] == LEAGUE_ADDRESS

    fake.allowance = 10**30
    body = api.get(
        "/api/leagues/0/gate",
        params={"owner": ALICE, "chain_id": chain_id, "picks": ["bad"]},
    ).json()
    assert body["step"] == "ReadyToExecute"
    assert body["action"]["enabled"] is False

    body = api.get("/api/leagues/0/gate", params={"owner": ALICE, "chain_id": 1}).json()
    assert body["step"] == "NetworkMismatch"


def test_validate_create_form(api) -> None:
    form = {
        "entry_fee": "100",
        "duration": 86_400,
        "max_players": 4,
        "max_picks": 1,
        "house_cut_percent": 5,
        "picks": [PICK_1],
    }
    body = api.post("/api/leagues/validate", json=form).json()
    assert body["params"]["entry_fee"] == 100 * 10**18
    assert body["params"]["house_cut_bps"] == 500
    assert body["estimated_pot"] == 400 * 10**18
    assert body["estimated_house_cut"] == 20 * 10**18
    assert body["net_pot"] == 380 * 10**18
    assert body["estimated_pot_display"] == "400 CLAWD"
    assert body["estimated_house_cut_display"] == "20 CLAWD"
    assert [row["players"] for row in body["by_player_count"]] == [2, 3, 4]

    form["picks"] = ["0x12"]
    response = api.post("/api/leagues/validate", json=form)
    assert response.status_code == 400


def test_settle_only_when_allowed(api, fake) -> None:
    assert api.post("/api/leagues/0/settle").status_code == 409
    response = api.post("/api/leagues/1/settle")
    assert response.status_code == 200
    assert response.json()["block_number"] == 99
    assert fake.settled == [1]


def test_settle_write_failure(api, fake) -> None:
    fake.fail_writes = True
    assert api.post("/api/leagues/1/settle").status_code == 502


def test_keeper_settles_ended_leagues_only(fake, monkeypatch) -> None:
    fake.leagues[3] = make_league(LeagueStatus.ACTIVE, id=3, players=0, end_time=END + 100)
    monkeypatch.setattr(main, "now_seconds", lambda: END)
    assert asyncio.run(main.settle_ended_leagues(fake)) == [1]
    assert fake.settled == [1]


def test_join_gate_rejects_malformed_owner(api) -> None:
    response = api.get("/api/leagues/0/gate", params={"owner": "0xabc", "chain_id": 1})
    assert response.status_code == 400


def test_validate_create_form_rejects_out_of_range_players(api) -> None:
    form = {
        "entry_fee": "100",
        "duration": 86_400,
        "max_players": 11,
        "max_picks": 1,
        "house_cut_percent": 5,
        "picks": [PICK_1],
    }
    assert api.post("/api/leagues/validate", json=form).status_code == 400


def test_read_endpoints_run_in_threadpool() -> None:
    for endpoint in (main.get_leagues, main.get_league, main.get_join_gate):
        assert not inspect.iscoroutinefunction(endpoint)


class BrokenLeagueClient(FakeLeagueClient):
    def __init__(self):
        super().__init__([])
        self.calls = 0

    def list_leagues(self, status=None):
        self.calls += 1
        raise ValueError("Expected 10 league fields, got 9")


def test_keeper_survives_unexpected_errors() -> None:
    client = BrokenLeagueClient()

    async def run():
        task = asyncio.create_task(main.settle_keeper(client, interval=0.01))
        await asyncio.sleep(0.2)
        alive = not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return alive

    assert asyncio.run(run()) is True
    assert client.calls > 1
