"""
CLI Entry Point: Run a Second-Degree Scout

Usage:
    python scripts/run_scout.py --company "Acme Corp" --function product
    python scripts/run_scout.py --company "Acme Corp" --seeds seeds.json --contacts contacts.json --json

Seeds and contacts files hold JSON arrays. Without MONGODB_URI the run is
stored in memory and only printed.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.common.config import Config
from src.common.error_handling import ScoutError
from src.common.logger import set_global_debug_mode, setup_logging
from src.common.rate_limiter import get_request_clock
from src.common.repositories import get_contact_repository, get_learning_repository, get_scout_repository
from src.common.utils import run_async
from src.services.scout.chain import create_provider_chain_from_config
from src.services.scout.learning import get_active_weights
from src.services.scout.models import ScoutRunResult, validate_scout_request
from src.services.scout.runner import ScoutRunOptions, run_scout
from version import __version__

logger = logging.getLogger("run_scout")


def load_json_array(path: str) -> List[Any]:
    """Load a JSON array from a file."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(file_path, "r") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array")
    return data


def print_summary(result: ScoutRunResult) -> None:
    run = result.run
    diagnostics = result.diagnostics

    print(f"\nRun {run.id}")
    print(f"  Company: {run.target_company}")
    print(f"  Status:  {run.status.value}")
    print(f"  Source:  {run.source}")
    print(f"  Notes:   {run.notes}")

    print(f"\nAdapter attempts (limit {diagnostics.effective_limit}, min confidence {diagnostics.min_confidence}):")
    for attempt in diagnostics.adapter_attempts:
        error = f" - {attempt.error}" if attempt.error else ""
        print(f"  {attempt.adapter:<16} {attempt.status.value:<15} {attempt.result_count}{error}")

    if run.targets:
        print(f"\nTargets ({len(run.targets)}):")
        for target in run.targets:
            title = f", {target.current_title}" if target.current_title else ""
            print(f"  {target.confidence:.2f}  {target.full_name}{title}")

    if run.connector_paths:
        names = {target.id: target.full_name for target in run.targets}
        print(f"\nConnector paths ({len(run.connector_paths)}):")
        for path in run.connector_paths:
            ask = path.recommended_ask.value if path.recommended_ask else "-"
            print(
                f"  {path.path_score:6.2f}  {path.connector_name} -> "
                f"{names.get(path.target_id, path.target_id)} [{ask}]"
            )


def main():
    """Main CLI function."""
    parser = argparse.ArgumentParser(description="Find second-degree targets and connector paths at a company")
    parser.add_argument("--company", required=True, help="Target company")
    parser.add_argument("--function", help="Target function, e.g. 'product'")
    parser.add_argument("--title", help="Target title, e.g. 'Senior Product Manager'")
    parser.add_argument("--limit", type=int, help="Maximum targets (1-100, default 25)")
    parser.add_argument("--seeds", help="JSON file with seed targets (skips provider discovery)")
    parser.add_argument("--contacts", help="JSON file with contacts to load into the connector pool")
    parser.add_argument("--min-confidence", type=float, help="Minimum target confidence (0-1)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-format", choices=["simple", "json"], default="simple", help="Log line format")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args()

    load_dotenv()
    set_global_debug_mode(args.debug or Config.DEBUG_MODE)
    setup_logging(
        level="DEBUG" if args.debug else "WARNING" if args.json else "INFO",
        format=args.log_format,
    )

    try:
        Config.validate()

        payload = {
            "target_company": args.company,
            "target_function": args.function,
            "target_title": args.title,
            "limit": args.limit,
        }
        if args.seeds:
            payload["seed_targets"] = load_json_array(args.seeds)
        request = validate_scout_request(payload)

        contacts = get_contact_repository()
        if args.contacts:
            written = contacts.upsert_contacts(load_json_array(args.contacts))
            logger.info(f"Loaded {written} contacts from {args.contacts}")

        options = ScoutRunOptions(
            min_target_confidence=args.min_confidence,
            weights=get_active_weights(get_learning_repository()),
        )

        result = run_async(
            run_scout(
                request,
                providers=create_provider_chain_from_config(),
                repository=get_scout_repository(),
                contacts=contacts,
                options=options,
            )
        )
    except (ScoutError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    logger.debug(f"LinkedIn request clock: {json.dumps(get_request_clock().to_dict())}")

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        print_summary(result)

    sys.exit(1 if result.run.status.value == "failed" else 0)


if __name__ == "__main__":
    main()
