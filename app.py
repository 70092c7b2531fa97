# app.py
import argparse
import logging
import multiprocessing as mp

# -----------------------------------------------------------
# Core Imports
# -----------------------------------------------------------

from engine import run_monte_carlo
from utils.currency import format_currency_output, format_percent_output
from utils.input_adapter import build_parameters
from utils.xml_loader import DEFAULT_HOUSEHOLD_XML, parse_household_xml

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Retirement Monte Carlo for one household")
    parser.add_argument("household", nargs="?", default=str(DEFAULT_HOUSEHOLD_XML),
                        help="household XML file (defaults to the sample household)")
    parser.add_argument("--trials", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--workers", type=int, default=max(1, mp.cpu_count() - 1))  # leave 1 core free
    parser.add_argument("--no-calibrate", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Loading household from %s", args.household)
    params = build_parameters(parse_household_xml(args.household))
    result = run_monte_carlo(
        params,
        trials=args.trials,
        seed=args.seed,
        workers=args.workers,
        calibrate=not args.no_calibrate,
    )

    print(f"\nSuccess rate: {format_percent_output(result.probability_of_success)}")
    print(f"Safe withdrawal rate: {format_percent_output(result.safe_withdrawal_rate, 2)}")
    print(f"Current assets: {format_currency_output(result.current_assets)}")
    print(f"Projected portfolio at retirement: {format_currency_output(result.projected_portfolio)}")
    for p, value in result.percentiles.items():
        print(f"{p}th percentile ending balance: {format_currency_output(value)}")
    print(f"Legacy goal met: {format_percent_output(result.legacy_goal_probability)}")

    frame = result.cash_flow_frame()
    if not frame.empty:
        print("\nRepresentative trial:")
        print(frame.to_string(index=False, float_format=lambda v: f"{v:,.0f}"))
    return result


if __name__ == "__main__":
    main()
