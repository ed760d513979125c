"""
Main entry point for stochastic network design.

Run with: python -m stochastic_network_design.main --instance complex
"""

import argparse
import logging
import sys
from pathlib import Path

import matplotlib.pyplot as plt

from .config import create_default_config
from .data.examples import INSTANCE_BUILDERS, get_instance
from .logging_config import setup_logging
from .milp.model_builder import build_instance_model
from .milp.results import extract_results, format_report
from .utils.visualization import plot_results


def print_instance_summary(instance):
    """Print the size of the network and the scenario table."""
    network = instance.network
    print(f"\n[Network: {instance.name}]")
    print(f"  Nodes: {network.num_nodes} "
          f"({len(network.source_nodes)} source, "
          f"{len(network.intermediate_nodes)} intermediate, "
          f"{len(network.demand_nodes)} demand)")
    print(f"  Arcs: {network.num_arcs}")
    print(f"  Configurable nodes: {len(network.configurable)}")
    print(f"  Revenue per unit: {instance.revenue_per_unit:.2f}")

    print("\n[Scenarios]")
    for k in instance.scenarios.ids:
        total_demand = sum(
            instance.scenarios.scenario_demand(node, k) for node in network.demand_nodes
        )
        print(f"  Scenario {k}: prob={instance.scenarios.probability(k):.2f}, "
              f"total_demand={total_demand:.0f}")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Two-stage stochastic supply chain network design"
    )
    parser.add_argument(
        "--instance",
        choices=sorted(INSTANCE_BUILDERS),
        default="complex",
        help="Reference network to optimize"
    )
    parser.add_argument(
        "--solver",
        type=str,
        default="PULP_CBC_CMD",
        help="PuLP solver command (PULP_CBC_CMD, GUROBI_CMD, HiGHS_CMD)"
    )
    parser.add_argument(
        "--time-limit",
        type=int,
        default=300,
        help="Solver time limit in seconds"
    )
    parser.add_argument(
        "--save-plots",
        type=str,
        default=None,
        help="Directory to save plots"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    args = parser.parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    config = create_default_config()
    config.solver.solver_name = args.solver
    config.solver.time_limit = args.time_limit

    print("\n" + "=" * 60)
    print("STOCHASTIC SUPPLY CHAIN NETWORK DESIGN")
    print("Two-Stage Expected-Profit MILP")
    print("=" * 60)

    instance = get_instance(args.instance)
    print_instance_summary(instance)

    print("\n[Building Model]")
    milp = build_instance_model(instance, config.scenarios)
    print(f"  Variables: {len(milp.model.variables())}")
    print(f"  Constraints: {len(milp.model.constraints)}")

    print(f"\n[Optimizing with {config.solver.solver_name}]")
    status = milp.solve(config.solver)
    print(f"  Status: {status.value}")

    result = extract_results(milp, config.results)
    print(format_report(result, title=instance.name))

    if result.is_optimal:
        print(f"\n  Expected profit (check): {result.expected_profit():.2f}")

    if args.save_plots:
        if result.is_optimal:
            print(f"\n[Saving plots to {args.save_plots}]")
            Path(args.save_plots).mkdir(parents=True, exist_ok=True)
            figures = plot_results(
                instance.network, result,
                save_dir=args.save_plots,
                prefix=instance.name,
                plot_config=config.plot,
                layout_config=config.layout
            )
            for fig in figures:
                plt.close(fig)
        else:
            print(f"\nSkipping plot generation. Status: {result.status.value}")

    print("\n" + "=" * 60)
    print("OPTIMIZATION COMPLETE")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
