"""Tests for the HTTP API."""
import pytest

from tests.conftest import headers_for, token_for


async def _create(client, auth_headers, **overrides):
    body = {
        "name": "Weekend Cup",
        "type": "public",
        "max_players": 4,
        "entry_cost": 10,
        "prize_pool": 100,
    }
    body.update(overrides)
    r = await client.post("/api/tournaments", json=body, headers=auth_headers)
    assert r.status_code == 201, r.text
    return r.json()


async def _full_tournament(client, auth_headers, make_user):
    t = await _create(client, auth_headers)
    players = [await make_user(f"P{i}", coins=50) for i in range(4)]
    for p in players:
        r = await client.post(f"/api/tournaments/{t['id']}/join", headers=headers_for(p))
        assert r.status_code == 200, r.text
    return t, players


@pytest.mark.asyncio
async def test_health(client):
    """Health endpoint returns ok."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_list_tournaments_empty(client):
    r = await client.get("/api/tournaments")
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_create_tournament(client, auth_headers):
    data = await _create(client, auth_headers, description="Open to all")
    assert data["name"] == "Weekend Cup"
    assert data["maxPlayers"] == 4
    assert data["entryFee"] == 10
    assert data["status"] == "registration"
    assert data["tournamentAwardPercentage"] == 80
    assert data["players"] == []
    assert data["champion"] is None

    r = await client.get("/api/tournaments")
    assert [t["name"] for t in r.json()] == ["Weekend Cup"]


@pytest.mark.asyncio
async def test_create_tournament_validation(client, auth_headers):
    r = await client.post(
        "/api/tournaments",
        json={"name": "Odd", "max_players": 6, "entry_cost": 10, "prize_pool": 100},
        headers=auth_headers,
    )
    assert r.status_code == 400
    await _create(client, auth_headers, name="Taken")
    r = await client.post(
        "/api/tournaments",
        json={"name": "Taken", "max_players": 4, "entry_cost": 10, "prize_pool": 100},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert "already exists" in r.json()["detail"]


@pytest.mark.asyncio
async def test_protected_endpoints_require_auth(client, make_user):
    body = {"name": "X", "max_players": 4, "entry_cost": 1, "prize_pool": 1}
    r = await client.post("/api/tournaments", json=body)
    assert r.status_code == 401

    player = await make_user("Plain")
    r = await client.post("/api/tournaments", json=body, headers=headers_for(player))
    assert r.status_code == 403

    r = await client.post("/api/tournaments", json=body, headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_x_auth_token_fallback(client, admin):
    r = await client.get("/api/users", headers={"X-Auth-Token": token_for(admin)})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_suspended_user_rejected(client, make_user, auth_headers):
    t = await _create(client, auth_headers)
    banned = await make_user("Banned", status="suspended")
    r = await client.post(f"/api/tournaments/{t['id']}/join", headers=headers_for(banned))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_join_and_bracket(client, auth_headers, make_user):
    t, players = await _full_tournament(client, auth_headers, make_user)

    r = await client.get(f"/api/tournaments/{t['id']}")
    data = r.json()
    assert data["status"] == "active"
    assert data["currentRound"] == 1
    assert [p["id"] for p in data["players"]] == [p.id for p in players]
    assert all(p["wallet"]["balance"] == 40 for p in data["players"])

    r = await client.get(f"/api/tournaments/{t['id']}/bracket")
    assert r.status_code == 200
    bracket = r.json()["bracket"]
    assert bracket["maxPlayers"] == 4
    assert [rnd["name"] for rnd in bracket["rounds"]] == ["Semi-Finals", "Final"]
    assert bracket["rounds"][1]["matches"][0]["status"] == "waiting"


@pytest.mark.asyncio
async def test_join_errors(client, auth_headers, make_user):
    t = await _create(client, auth_headers)
    poor = await make_user("Poor", coins=1)
    r = await client.post(f"/api/tournaments/{t['id']}/join", headers=headers_for(poor))
    assert r.status_code == 400
    assert r.json()["detail"] == "Insufficient coins"

    r = await client.post("/api/tournaments/9999/join", headers=headers_for(poor))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_bracket_missing(client, auth_headers):
    t = await _create(client, auth_headers)
    r = await client.get(f"/api/tournaments/{t['id']}/bracket")
    assert r.status_code == 404
    r = await client.get("/api/tournaments/9999")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_record_results_to_champion(client, auth_headers, make_user):
    t, (a, b, c, d) = await _full_tournament(client, auth_headers, make_user)
    url = f"/api/tournaments/{t['id']}/matches/result"

    r = await client.post(url, json={"round_number": 1, "match_index": 0, "winner_id": b.id}, headers=auth_headers)
    assert r.status_code == 200, r.text
    assert r.json()["completed"] is False

    r = await client.post(url, json={"round_number": 1, "match_index": 1, "winner_id": c.id}, headers=auth_headers)
    assert r.json()["currentRound"] == 2

    r = await client.post(url, json={"round_number": 2, "match_index": 0, "winner_id": c.id}, headers=auth_headers)
    data = r.json()
    assert data["completed"] is True
    assert data["champion_id"] == c.id
    assert data["status"] == "completed"
    assert data["prizeDistributed"] is True
    assert data["champion"]["wallet"]["balance"] == 40 + 80
    assert data["champion"]["stats"] == {"wins": 2, "losses": 0, "matchesPlayed": 2}


@pytest.mark.asyncio
async def test_record_result_errors(client, auth_headers, make_user):
    t, (a, b, c, d) = await _full_tournament(client, auth_headers, make_user)
    url = f"/api/tournaments/{t['id']}/matches/result"

    r = await client.post(url, json={"round_number": 1, "match_index": 0, "winner_id": c.id}, headers=auth_headers)
    assert r.status_code == 400
    assert "Winner must be one of the match players" in r.json()["detail"]

    r = await client.post(url, json={"round_number": 2, "match_index": 0, "winner_id": a.id}, headers=auth_headers)
    assert r.status_code == 400

    r = await client.post(url, json={"round_number": 3, "match_index": 0, "winner_id": a.id}, headers=auth_headers)
    assert r.status_code == 400

    r = await client.post(url, json={"round_number": 1, "match_index": 0, "winner_id": a.id}, headers=auth_headers)
    assert r.status_code == 200
    r = await client.post(url, json={"round_number": 1, "match_index": 0, "winner_id": a.id}, headers=auth_headers)
    assert r.status_code == 400
    assert "already completed" in r.json()["detail"]

    r = await client.post(url, json={"round_number": 1, "match_index": 1, "winner_id": c.id}, headers=headers_for(c))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_cancel_and_award_percentage(client, auth_headers, make_user):
    t = await _create(client, auth_headers)
    p = await make_user("Solo", coins=20)
    await client.post(f"/api/tournaments/{t['id']}/join", headers=headers_for(p))

    r = await client.post(
        f"/api/tournaments/{t['id']}/award-percentage", json={"percentage": 150}, headers=auth_headers
    )
    assert r.status_code == 400
    r = await client.post(
        f"/api/tournaments/{t['id']}/award-percentage", json={"percentage": 60}, headers=auth_headers
    )
    assert r.json()["awardPercentage"] == 60

    r = await client.post(f"/api/tournaments/{t['id']}/cancel", json={"reason": "No show"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "refundedCount": 1}

    r = await client.get(f"/api/users/{p.id}", headers=headers_for(p))
    assert r.json()["wallet"]["balance"] == 20

    r = await client.post(f"/api/tournaments/{t['id']}/cancel", headers=auth_headers)
    assert r.status_code == 400

    r = await client.get("/api/tournaments", params={"status": "cancelled"})
    assert [x["cancellationReason"] for x in r.json()] == ["No show"]


@pytest.mark.asyncio
async def test_users_and_coin_ledger(client, auth_headers, make_user):
    r = await client.post(
        "/api/users",
        json={"name": "New Player", "email": "New@Example.com", "coins": 25},
        headers=auth_headers,
    )
    assert r.status_code == 201, r.text
    user = r.json()
    assert user["email"] == "new@example.com"
    assert user["wallet"]["balance"] == 25

    r = await client.post("/api/users", json={"name": "Again", "email": "new@example.com"}, headers=auth_headers)
    assert r.status_code == 400

    r = await client.patch(f"/api/users/{user['id']}/coins", json={"amount": -5, "reason": "Chargeback"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["coins"] == 20
    assert r.json()["transaction"]["type"] == "admin_remove"

    r = await client.patch(f"/api/users/{user['id']}/coins", json={"amount": -100}, headers=auth_headers)
    assert r.status_code == 400

    r = await client.get("/api/transactions", params={"user_id": user["id"]}, headers=auth_headers)
    txs = r.json()
    assert [tx["type"] for tx in txs] == ["admin_remove", "admin_add"]
    assert txs[0]["balanceBefore"] == 25 and txs[0]["balanceAfter"] == 20
    assert txs[0]["reason"] == "Chargeback"

    r = await client.get("/api/users", params={"search": "new"}, headers=auth_headers)
    assert [u["username"] for u in r.json()] == ["New Player"]


@pytest.mark.asyncio
async def test_user_visibility_and_status(client, auth_headers, make_user, admin):
    a = await make_user("A")
    b = await make_user("B")
    r = await client.get(f"/api/users/{b.id}", headers=headers_for(a))
    assert r.status_code == 403
    r = await client.get(f"/api/users/{a.id}", headers=headers_for(a))
    assert r.status_code == 200

    r = await client.patch(f"/api/users/{a.id}/status", json={"status": "suspended"}, headers=auth_headers)
    assert r.json()["status"] == "suspended"
    r = await client.get(f"/api/users/{a.id}", headers=headers_for(a))
    assert r.status_code == 403

    r = await client.patch(f"/api/users/{admin.id}/status", json={"status": "suspended"}, headers=auth_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_admin_cannot_manage_own_coins(client, auth_headers, admin):
    r = await client.patch(f"/api/users/{admin.id}/coins", json={"amount": 500}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "You cannot manage your own coins"
    r = await client.get(f"/api/users/{admin.id}", headers=auth_headers)
    assert r.json()["wallet"]["balance"] == 0


@pytest.mark.asyncio
async def test_tournament_players(client, auth_headers, make_user):
    t = await _create(client, auth_headers)
    first = await make_user("First", coins=50)
    second = await make_user("Second", coins=50)
    for p in (second, first):
        await client.post(f"/api/tournaments/{t['id']}/join", headers=headers_for(p))

    r = await client.get(f"/api/tournaments/{t['id']}/players")
    assert r.status_code == 200
    data = r.json()
    assert [p["username"] for p in data["players"]] == ["Second", "First"]
    assert (data["totalPlayers"], data["maxPlayers"]) == (2, 4)

    r = await client.get("/api/tournaments/9999/players")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_user_stats_and_dashboard(client, auth_headers, make_user):
    t, (a, b, c, d) = await _full_tournament(client, auth_headers, make_user)
    url = f"/api/tournaments/{t['id']}/matches/result"
    for rnd, idx, winner in ((1, 0, a), (1, 1, d), (2, 0, d)):
        r = await client.post(url, json={"round_number": rnd, "match_index": idx, "winner_id": winner.id}, headers=auth_headers)
        assert r.status_code == 200, r.text

    r = await client.get(f"/api/users/{d.id}/stats", headers=auth_headers)
    assert r.status_code == 200
    stats = r.json()
    assert stats["user"]["id"] == d.id
    assert stats["matches"]["won"] == 2
    assert stats["tournaments"] == {"joined": 1, "won": 1, "winRate": 100.0}
    assert stats["economy"]["netCoins"] == 70

    r = await client.get(f"/api/users/{d.id}/stats", headers=headers_for(d))
    assert r.status_code == 403
    r = await client.get("/api/users/9999/stats", headers=auth_headers)
    assert r.status_code == 404

    r = await client.get("/api/dashboard/stats", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {
        "totalUsers": 4,
        "totalCoins": 4 * 40 + 80,
        "coinsIssued": 80,
        "coinsUsedInTournaments": 40,
        "coinsRefunded": 0,
        "tournaments": {"registration": 0, "active": 0, "completed": 1, "cancelled": 0},
    }


@pytest.mark.asyncio
async def test_dashboard_nets_out_refunds(client, auth_headers, make_user):
    t = await _create(client, auth_headers)
    p = await make_user("Solo", coins=20)
    await client.post(f"/api/tournaments/{t['id']}/join", headers=headers_for(p))
    await client.post(f"/api/tournaments/{t['id']}/cancel", headers=auth_headers)

    r = await client.get("/api/dashboard/stats", headers=auth_headers)
    data = r.json()
    assert (data["coinsUsedInTournaments"], data["coinsRefunded"]) == (0, 10)
    assert data["tournaments"]["cancelled"] == 1

    r = await client.get("/api/dashboard/stats", headers=headers_for(p))
    assert r.status_code == 403
