"""Entry point for competition stats commands"""
import argparse
import json
import logging
import sys
import traceback
from typing import List, Optional

from folding_tc.competition import CompetitionService
from folding_tc.config import settings
from folding_tc.coordinator import StateChangeCoordinator, UserLocks
from folding_tc.db import db
from folding_tc.historic import HistoricStatsService
from folding_tc.models.summary import HistoricStats
from folding_tc.services.folding import FoldingStatsAPI
from folding_tc.services.storage import StorageService
from folding_tc.state import StateManager, SystemState
from folding_tc.updater import StatsUpdater

logging.basicConfig(level=settings.LOG_LEVEL.upper(), format='%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s')
logger = logging.getLogger(__name__)

COMMANDS = ('update', 'summary', 'leaderboards', 'reset', 'monthly-result', 'historic')

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='folding_tc', description="Folding@Home team competition stats")
    parser.add_argument('command', choices=COMMANDS, help="Operation to run")
    parser.add_argument('--user-id', type=int, help="User for 'historic'")
    parser.add_argument('--team-id', type=int, help="Team for 'historic', used when no user is given")
    parser.add_argument('--year', type=int, help="Year for 'historic'")
    parser.add_argument('--month', type=int, help="Month for 'historic', shows daily stats")
    parser.add_argument('--day', type=int, help="Day for 'historic', shows hourly stats")
    return parser.parse_args(argv)

def dump(model) -> None:
    """Print a summary model as camelCase JSON"""
    print(json.dumps(model.model_dump(mode='json', by_alias=True), indent=2))

def historic_stats(service: HistoricStatsService, args: argparse.Namespace) -> List[HistoricStats]:
    """Hourly stats when a day is given, daily when a month is given, otherwise monthly"""
    if args.year is None or (args.user_id is None and args.team_id is None):
        raise ValueError("'historic' requires --year and one of --user-id or --team-id")
    if args.day is not None and args.month is None:
        raise ValueError("--day requires --month")

    if args.user_id is not None:
        if args.day is not None:
            return service.user_hourly(args.user_id, args.year, args.month, args.day)
        if args.month is not None:
            return service.user_daily(args.user_id, args.year, args.month)
        return service.user_monthly(args.user_id, args.year)

    if args.day is not None:
        return service.team_hourly(args.team_id, args.year, args.month, args.day)
    if args.month is not None:
        return service.team_daily(args.team_id, args.year, args.month)
    return service.team_monthly(args.team_id, args.year)

def run(argv: Optional[List[str]] = None) -> None:
    """Run a single competition stats command."""
    args = parse_args(argv)
    try:
        db.init()

        storage = StorageService(db)
        state_manager = StateManager()
        user_locks = UserLocks()
        stats_api = FoldingStatsAPI(settings)
        coordinator = StateChangeCoordinator(storage, stats_api, state_manager, user_locks)
        updater = StatsUpdater(settings, storage, stats_api, state_manager, user_locks, coordinator)
        competition = CompetitionService(storage, state_manager)
        state_manager.next_system_state(SystemState.AVAILABLE)

        if args.command == 'update':
            results = updater.update_users_and_wait(storage.list_users())
            logger.info(f"Updated TC stats for {len(results)} users")
        elif args.command == 'summary':
            dump(competition.competition_summary())
        elif args.command == 'leaderboards':
            result = competition.leaderboards.monthly_result(competition.competition_summary())
            dump(result)
        elif args.command == 'reset':
            updater.reset_competition()
        elif args.command == 'monthly-result':
            dump(competition.store_monthly_result())
        elif args.command == 'historic':
            history = historic_stats(HistoricStatsService(storage, state_manager), args)
            print(json.dumps([stats.model_dump(mode='json', by_alias=True) for stats in history], indent=2))

        updater.shutdown()

    except Exception as e:
        logger.error(f"Error running '{args.command}': {e}")
        traceback.print_exc()
        sys.exit(1)
    finally:
        db.dispose()

if __name__ == "__main__":
    run()
