import argparse
import asyncio
import logging
import sys
import time
from datetime import date

from contributions.collector import collect_contributions, report_to_json
from contributions.errors import ConfigurationError, ContributionsError
from contributions.models import ContributionReport
from contributions.service import GitHubService, load_github_config


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="List the external GitHub repositories a user contributed to, per year."
    )
    parser.add_argument("--username", default="", help="GitHub username")
    parser.add_argument("--start", type=int, default=2020, help="Start year (inclusive)")
    parser.add_argument(
        "--end", type=int, default=date.today().year, help="End year (inclusive)"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (stderr)",
    )
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> ContributionReport:
    if not args.username:
        raise ConfigurationError("Missing required flag: --username")
    config = load_github_config()

    service = await GitHubService.create(config)
    try:
        return await collect_contributions(service, args.username, args.start, args.end)
    finally:
        await service.close()


def cli(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level)
    logging.info("Starting...")
    start_time = time.time()

    try:
        report = asyncio.run(main(args))
    except ContributionsError as e:
        logging.error(str(e))
        sys.exit(1)

    print(report_to_json(report))
    logging.info(f"Execution time: {time.time() - start_time:.2f}s")


if __name__ == "__main__":
    cli()
