from __future__ import annotations

import argparse
import asyncio
import csv
import sys
from datetime import datetime, time
from pathlib import Path
from typing import NamedTuple
from uuid import UUID

# Allows running the script from the repository root.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

# Spreadsheet ledgers mix these layouts; date-only rows count as noon.
TIMESTAMP_FORMATS = ("%m/%d/%y %I:%M %p", "%m/%d/%Y %H:%M:%S", "%m/%d/%Y")


class LedgerRow(NamedTuple):
    line: int
    played_at: datetime
    winner: str
    loser: str


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        pass
    else:
        return _noon(parsed) if len(text) <= 10 else parsed
    for fmt in TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed if "%H" in fmt or "%I" in fmt else _noon(parsed)
    raise ValueError(f"Could not parse timestamp: {value!r}")


def _noon(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time(12, 0))


def split_name(name: str) -> tuple[str, str]:
    """``"W Huang"`` becomes ``("W", "Huang")``; a single word has no last name."""
    parts = name.split()
    if len(parts) >= 2:
        return parts[0], " ".join(parts[1:])
    return name.strip(), ""


def read_ledger(path: Path) -> tuple[list[LedgerRow], list[str]]:
    """Read ``time,winner,loser`` rows (header first), oldest first, plus skip notes."""
    rows: list[LedgerRow] = []
    skipped: list[str] = []
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        next(reader, None)
        for line, record in enumerate(reader, start=2):
            if len(record) < 3 or not record[1].strip() or not record[2].strip():
                skipped.append(f"line {line}: expected time, winner and loser")
                continue
            try:
                played_at = parse_timestamp(record[0])
            except ValueError as exc:
                skipped.append(f"line {line}: {exc}")
                continue
            rows.append(LedgerRow(line, played_at, record[1].strip(), record[2].strip()))
    rows.sort(key=lambda row: (row.played_at, row.line))
    return rows, skipped


async def import_matches(args: argparse.Namespace) -> int:
    from api.common.errors import ConflictError
    from api.config.settings import get_settings
    from api.db.enums import MatchWinner
    from api.db.locks import SeasonLockManager
    from api.db.session import get_sessionmaker
    from api.modules.matches.repository import MatchesRepository
    from api.modules.matches.schemas import MatchGameRequest, MatchSubmitRequest
    from api.modules.matches.service import MatchesService
    from api.modules.players.repository import PlayersRepository
    from api.modules.players.schemas import PlayerCreateRequest
    from api.modules.players.service import PlayersService
    from api.modules.recalculation.engine import RecalculationEngine
    from api.modules.recalculation.repository import RecalculationRepository

    rows, skipped = read_ledger(Path(args.csv_path))
    print(f"Read {len(rows)} matches from {args.csv_path}")
    for note in skipped:
        print(f"  skipped {note}")
    if args.dry_run:
        return 0

    settings = get_settings()
    sessionmaker = get_sessionmaker()
    locks = SeasonLockManager(timeout_s=settings.season_lock_timeout_s)

    async with sessionmaker() as session:
        players = PlayersService(PlayersRepository(session=session), settings)
        known = {
            (player.first_name, player.last_name): player.id
            for player in await players.list_players()
        }
        ids: dict[str, UUID] = {}
        for name in sorted({row.winner for row in rows} | {row.loser for row in rows}):
            key = split_name(name)
            if key not in known:
                first_name, last_name = key
                created = await players.create_player(
                    PlayerCreateRequest(first_name=first_name, last_name=last_name)
                )
                known[key] = created.id
                print(f"  created player {created.display_name}")
            ids[name] = known[key]

    imported = 0
    failed = 0
    for row in rows:
        async with sessionmaker() as session:
            service = MatchesService(
                repository=MatchesRepository(session=session),
                engine=RecalculationEngine(
                    RecalculationRepository(session=session),
                    progress_interval=settings.recalc_progress_interval,
                ),
                locks=locks,
                settings=settings,
            )
            try:
                await service.submit_match(
                    MatchSubmitRequest(
                        player1_id=ids[row.winner],
                        player2_id=ids[row.loser],
                        games=[MatchGameRequest(winner=MatchWinner.PLAYER1)],
                        submitted_at=row.played_at,
                        created_by=args.created_by,
                    )
                )
            except (LookupError, ValueError, ConflictError) as exc:
                failed += 1
                print(f"  line {row.line}: {exc}")
                continue
        imported += 1

    print(f"Imported {imported} matches, {failed} rejected, {len(skipped)} unreadable")
    return 1 if failed else 0


async def main_async() -> None:
    parser = argparse.ArgumentParser(
        description="Import a time,winner,loser CSV ledger as one-game matches."
    )
    parser.add_argument("csv_path")
    parser.add_argument("--dry-run", action="store_true", help="Parse and report only.")
    parser.add_argument("--created-by", default="import_matches")
    args = parser.parse_args()

    try:
        status = await import_matches(args)
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    finally:
        from api.db.session import get_engine

        await get_engine().dispose()
    raise SystemExit(status)


if __name__ == "__main__":
    asyncio.run(main_async())
