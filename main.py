import config
from utils.generator import RingGenerator, ERGenerator
from utils.utils import read_network, setup_logger, create_output_file
from matching import CompatibilityGraph, CompatibilityMode
from explorer import guaranteed_depth
import argparse
import pandas as pd

logger = setup_logger(__name__)


def parse_ring_sizes(text: str) -> list[int]:
    """Parse "5,5" into [5, 5]."""
    try:
        sizes = [int(part) for part in text.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid ring sizes: {text!r}") from None
    if not sizes or any(size <= 0 for size in sizes):
        raise argparse.ArgumentTypeError(f"Ring sizes must be positive integers: {text!r}")
    return sizes


def get_graphs(args):
    """
    Generates or reads the friendship networks of both cities.

    :param args: The object containing arguments parsed from the command line.
    :return: A list of two networkx.Graph objects, city A first.
    """
    if args.files:
        if len(args.files) != 2:
            raise ValueError(f"Expected two network files, got {len(args.files)}.")
        logger.info(f"Reading networks from files: {args.files}")
        graphs = [read_network(f, n) for f, n in zip(args.files, args.populations or [args.n, args.n])]
    elif args.net_type.upper() == "ER":
        logger.info(f"Generating two ER cities (n={args.n}, k={args.k}, seed={args.seed})")
        graphs = ERGenerator(args.n, args.k, seed=args.seed).generate_networks(2)
    elif args.net_type.upper() == "RING":
        logger.info(f"Building ring cities: A={args.city_a}, B={args.city_b}")
        graphs = [RingGenerator(args.city_a).generate_network(), RingGenerator(args.city_b).generate_network()]
    else:
        raise ValueError(f"Unknown network type: {args.net_type}")

    return graphs


def run_searches(graphs, modes, args):
    """
    Runs the guaranteed-depth search once per compatibility mode.

    :param graphs: City A and city B as networkx.Graph objects.
    :param modes: A list of compatibility mode names.
    :param args: Search options parsed from the command line.
    :return: The results DataFrame.
    """
    city_a = CompatibilityGraph.from_networkx(graphs[0], args.capacity)
    city_b = CompatibilityGraph.from_networkx(graphs[1], args.capacity)
    logger.info(f"City A: {city_a}, City B: {city_b}")

    results = []
    for name in modes:
        mode = CompatibilityMode.parse(name)

        logger.info(f"================ Running {mode.value} ================")
        result = guaranteed_depth(
            city_a,
            city_b,
            mode=mode,
            memoize=not args.no_memo,
            max_entries=args.max_entries,
            memo_policy=args.memo_policy,
            exact_bounds=args.exact_bounds,
            restore_order=args.restore_order,
        )
        print(f"Max capacity: {result.depth}, num: {result.calls}")
        logger.info(f"Execution time: {result.elapsed:.3f} seconds")

        results.append(
            {
                "Mode": mode.value,
                "Depth": result.depth,
                "Calls": result.calls,
                "Table Entries": result.table_entries,
                "Cache Hits": result.cache_hits,
                "Time (s)": round(result.elapsed, 3),
            }
        )

    return pd.DataFrame(results)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Compute the guaranteed matching depth between two cities under adversarial order.",
        formatter_class=argparse.RawTextHelpFormatter,
    )

    # City parameters
    parser.add_argument(
        "-a", "--city-a", type=parse_ring_sizes, default=config.CITY_A_RINGS,
        help="Ring sizes of city A, comma separated.\nExample: -a 5,5",
    )
    parser.add_argument(
        "-b", "--city-b", type=parse_ring_sizes, default=config.CITY_B_RINGS,
        help="Ring sizes of city B, comma separated.\nExample: -b 10",
    )
    parser.add_argument(
        "--net_type",
        type=str,
        default="RING",
        choices=["RING", "ER"],
        help="Build ring cities from -a/-b or random Erdos-Renyi cities.",
    )
    parser.add_argument(
        "-n", type=int, default=6, help="Population of random cities (and of file cities by default)."
    )
    parser.add_argument(
        "-k", type=float, default=2.0, help="Average degree for random cities."
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for ER cities.")
    parser.add_argument(
        "--files",
        nargs="+",
        help="Edge-list files of city A and city B (overrides generation).\nExample: --files assets/net/A.txt assets/net/B.txt",
    )
    parser.add_argument(
        "--populations", nargs=2, type=int, default=None,
        help="Populations of the file cities (defaults to -n for both).",
    )
    parser.add_argument(
        "--capacity", type=int, default=config.MAX_SIZE, help="Upper bound on the population of a city."
    )

    # Search parameters
    parser.add_argument(
        "--modes",
        nargs="+",
        default=[config.COMPATIBILITY_MODE],
        help="Compatibility modes to run.\nAvailable: directional, symmetric.",
    )
    parser.add_argument("--no-memo", action="store_true", help="Disable the transposition table.")
    parser.add_argument(
        "--memo-policy", choices=["always", "exhausted"], default=config.MEMO_POLICY,
        help="always: cache every result; exhausted: only results not cut short by the caller's bound.",
    )
    parser.add_argument(
        "--max-entries", type=int, default=config.TABLE_MAX_ENTRIES, help="Transposition table entry cap."
    )
    parser.add_argument(
        "--exact-bounds", action="store_true", default=config.EXACT_BOUNDS,
        help="Prune with best-1 so the result is the exact minimax value.",
    )
    parser.add_argument(
        "--restore-order", action="store_true", default=config.RESTORE_ORDER,
        help="Restore the candidate order after a scan stops early (implied by --exact-bounds).",
    )

    # Reporting
    parser.add_argument("--output", type=str, default=None, help="Save the results table as <output>.csv.")
    parser.add_argument("--plot", action="store_true", help="Draw both cities.")
    return parser


def main(argv=None):
    """
    Main function: parses command-line arguments, runs the searches, and prints results.
    """
    args = build_parser().parse_args(argv)

    try:
        # 1. Get cities
        graphs = get_graphs(args)

        # 2. Run searches
        results_df = run_searches(graphs, args.modes, args)

        # 3. Display results
        print("\n================ Search Results ================")
        print(results_df.to_string(index=False))
        print("=" * 40)

        if args.output:
            output_path = create_output_file(args.output)
            results_df.to_csv(output_path, index=False)
            logger.info(f"Results saved to {output_path}")

        if args.plot:
            from utils.plot import visualize_cities
            depths = ", ".join(f"{row['Mode']}={row['Depth']}" for _, row in results_df.iterrows())
            visualize_cities(graphs[0], graphs[1], title=f"Guaranteed depth: {depths}")

        return results_df

    except (ValueError, FileNotFoundError) as e:
        logger.error(f"An error occurred: {e}")
        return None


if __name__ == "__main__":
    main()
