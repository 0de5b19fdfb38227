from __future__ import annotations

from api.db.enums import MatchWinner
from api.modules.matches.schemas import MatchGameResponse, MatchResponse
from api.modules.matches.service import MatchRecord


def match_response(record: MatchRecord) -> MatchResponse:
    match = record.match
    games = []
    wins = {MatchWinner.PLAYER1: 0, MatchWinner.PLAYER2: 0}
    for game in record.games:
        winner = record.history.get((game.id, game.winner_id))
        loser = record.history.get((game.id, game.loser_id))
        wins[MatchWinner.PLAYER1 if game.winner_id == match.player1_id else MatchWinner.PLAYER2] += 1
        games.append(
            MatchGameResponse(
                id=game.id,
                game_number=game.game_number,
                played_at=game.played_at,
                winner_id=game.winner_id,
                loser_id=game.loser_id,
                elo_version=game.elo_version,
                # History is absent only while a replay of the season is pending.
                winner_elo_before=winner.elo_before if winner else 0.0,
                winner_elo_after=winner.elo_after if winner else 0.0,
                loser_elo_before=loser.elo_before if loser else 0.0,
                loser_elo_after=loser.elo_after if loser else 0.0,
            )
        )
    return MatchResponse(
        match_id=match.id,
        season_id=match.season_id,
        player1_id=match.player1_id,
        player2_id=match.player2_id,
        submitted_at=match.submitted_at,
        player1_wins=wins[MatchWinner.PLAYER1],
        player2_wins=wins[MatchWinner.PLAYER2],
        games=games,
    )
