"""
Reference network design instances.

simple:   two configurable suppliers feeding one retailer
complex:  suppliers -> manufacturers -> small/large DCs -> customers
extended: suppliers -> manufacturers -> central DCs -> regional DCs -> customers
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from .models import SupplyChainNetwork
from .scenarios import ScenarioSet

# Penalty large enough that unmet demand is a last resort
HARD_PENALTY = 99999999.0


@dataclass
class NetworkDesignInstance:
    """A complete model input: network, scenarios and economic parameters."""
    name: str
    network: SupplyChainNetwork
    scenarios: ScenarioSet
    revenue_per_unit: float
    exclusive_groups: Dict[str, List[str]] = field(default_factory=dict)


def _arcs(pairs: List[Tuple[str, str, float]]) -> List[Dict]:
    return [{"from": i, "to": j, "cost": c} for i, j, c in pairs]


def create_simple_instance() -> NetworkDesignInstance:
    """
    Two suppliers and one retailer.

    S1 has zero capacity but a positive opening cost, so opening it never
    pays off; it is kept as legal input.
    """
    nodes = ["S1", "S2", "R"]
    arc_definitions = _arcs([("S1", "R", 10.0), ("S2", "R", 12.0)])
    node_data = {
        "S1": {"type": "source", "capacity": 0, "processing_cost": 0, "opening_cost": 20},
        "S2": {"type": "source", "capacity": 600, "processing_cost": 0, "opening_cost": 10},
        "R": {"type": "demand", "demand": 700, "lost_demand_penalty": 500},
    }
    network = SupplyChainNetwork.from_definitions(
        nodes, arc_definitions, node_data, configurable_nodes=["S1", "S2"]
    )
    scenarios = ScenarioSet.from_definitions({}, {1: 0.7, 2: 0.15, 3: 0.15})

    return NetworkDesignInstance(
        name="simple",
        network=network,
        scenarios=scenarios,
        revenue_per_unit=50.0
    )


def create_complex_instance() -> NetworkDesignInstance:
    """Three-echelon network with a small/large size choice per DC location."""
    nodes = ["S1", "S2", "S3", "M1", "M2", "W1S", "W1L", "W2S", "W2L", "C1", "C2"]

    pairs = [
        ("S1", "M1", 5.0), ("S1", "M2", 5.5),
        ("S2", "M1", 6.0), ("S2", "M2", 6.5),
        ("S3", "M1", 7.0), ("S3", "M2", 7.5),
    ]
    for m, base in (("M1", 2.0), ("M2", 2.2)):
        for w, extra in (("W1S", 0.0), ("W1L", 0.0), ("W2S", 0.5), ("W2L", 0.5)):
            pairs.append((m, w, base + extra))
    for w, (c1_cost, c2_cost) in (("W1S", (1.0, 1.2)), ("W1L", (1.0, 1.2)),
                                  ("W2S", (1.3, 1.1)), ("W2L", (1.3, 1.1))):
        pairs.append((w, "C1", c1_cost))
        pairs.append((w, "C2", c2_cost))

    node_data = {
        "S1": {"type": "source", "capacity": 500, "processing_cost": 0, "opening_cost": 20},
        "S2": {"type": "source", "capacity": 600, "processing_cost": 0, "opening_cost": 25},
        "S3": {"type": "source", "capacity": 550, "processing_cost": 0, "opening_cost": 30},
        "M1": {"type": "intermediate", "capacity": 1000, "processing_cost": 10},
        "M2": {"type": "intermediate", "capacity": 1200, "processing_cost": 12},
        "W1S": {"type": "intermediate", "capacity": 200, "processing_cost": 0, "opening_cost": 100},
        "W1L": {"type": "intermediate", "capacity": 400, "processing_cost": 0, "opening_cost": 150},
        "W2S": {"type": "intermediate", "capacity": 250, "processing_cost": 0, "opening_cost": 120},
        "W2L": {"type": "intermediate", "capacity": 450, "processing_cost": 0, "opening_cost": 180},
        "C1": {"type": "demand", "demand": 150, "lost_demand_penalty": HARD_PENALTY},
        "C2": {"type": "demand", "demand": 200, "lost_demand_penalty": HARD_PENALTY},
    }
    configurable = ["S1", "S2", "S3", "W1S", "W1L", "W2S", "W2L"]

    # Only factors different from 1.0 are listed
    scenario_data = {
        "capacity_factor": {
            ("S1", 2): 0.8, ("S2", 2): 0.9,  # Supplier disruption
            ("W1S", 2): 0.0, ("W1L", 2): 0.0,  # W1 location fails
            ("S3", 3): 0.7,
        },
        "demand_factor": {
            ("C1", 2): 1.2, ("C2", 2): 1.1,
            ("C1", 3): 0.9, ("C2", 3): 0.8,
        },
    }

    network = SupplyChainNetwork.from_definitions(nodes, _arcs(pairs), node_data, configurable)
    scenarios = ScenarioSet.from_definitions(scenario_data, {1: 0.6, 2: 0.25, 3: 0.15})

    return NetworkDesignInstance(
        name="complex",
        network=network,
        scenarios=scenarios,
        revenue_per_unit=50.0,
        exclusive_groups={"dc_size_select_w1": ["W1S", "W1L"],
                          "dc_size_select_w2": ["W2S", "W2L"]}
    )


def create_extended_instance() -> NetworkDesignInstance:
    """Four-echelon network with central and regional DCs and four scenarios."""
    suppliers = ["S1", "S2", "S3", "S4"]
    manufacturers = ["M1", "M2", "M3"]
    central = ["WC1S", "WC1L", "WC2S", "WC2L"]
    regional = ["WR1S", "WR1L", "WR2S", "WR2L", "WR3S", "WR3L"]
    customers = ["C1", "C2", "C3", "C4"]
    nodes = suppliers + manufacturers + central + regional + customers

    pairs = [
        ("S1", "M1", 4.0), ("S1", "M2", 4.5),
        ("S2", "M1", 4.2), ("S2", "M2", 4.7), ("S2", "M3", 5.0),
        ("S3", "M2", 5.1), ("S3", "M3", 5.3),
        ("S4", "M3", 4.8),
    ]
    for m, location, cost in (("M1", "WC1", 1.5), ("M1", "WC2", 1.8),
                              ("M2", "WC1", 1.6), ("M2", "WC2", 1.7),
                              ("M3", "WC2", 1.9)):
        pairs += [(m, location + "S", cost), (m, location + "L", cost)]
    for wc, wr, cost in (("WC1", "WR1", 0.8), ("WC1", "WR2", 1.0),
                         ("WC2", "WR2", 0.9), ("WC2", "WR3", 1.1)):
        for wc_size in "SL":
            for wr_size in "SL":
                pairs.append((wc + wc_size, wr + wr_size, cost))
    for wr, customer, cost in (("WR1", "C1", 0.5), ("WR1", "C2", 0.6),
                               ("WR2", "C2", 0.55), ("WR2", "C3", 0.65),
                               ("WR3", "C3", 0.6), ("WR3", "C4", 0.7)):
        pairs += [(wr + "S", customer, cost), (wr + "L", customer, cost)]

    node_data = {}
    for node_id, capacity, opening in (("S1", 700, 25), ("S2", 800, 30),
                                       ("S3", 750, 28), ("S4", 650, 22)):
        node_data[node_id] = {"type": "source", "capacity": capacity,
                              "processing_cost": 0, "opening_cost": opening}
    for node_id, capacity, processing in (("M1", 1500, 10), ("M2", 1800, 12), ("M3", 1600, 11)):
        node_data[node_id] = {"type": "intermediate", "capacity": capacity,
                              "processing_cost": processing}
    for node_id, capacity, opening in (("WC1S", 500, 150), ("WC1L", 1000, 250),
                                       ("WC2S", 600, 180), ("WC2L", 1200, 280),
                                       ("WR1S", 300, 80), ("WR1L", 600, 130),
                                       ("WR2S", 350, 90), ("WR2L", 700, 140),
                                       ("WR3S", 400, 100), ("WR3L", 800, 150)):
        node_data[node_id] = {"type": "intermediate", "capacity": capacity,
                              "processing_cost": 0, "opening_cost": opening}
    for node_id, demand in (("C1", 200), ("C2", 250), ("C3", 300), ("C4", 150)):
        node_data[node_id] = {"type": "demand", "demand": demand,
                              "lost_demand_penalty": HARD_PENALTY}

    scenario_data = {
        "capacity_factor": {
            # Scenario 2: supplier disruption, WC1 fails
            ("S1", 2): 0.5, ("S2", 2): 0.7, ("WC1S", 2): 0.0, ("WC1L", 2): 0.0,
            # Scenario 3: M2 reduced, WR2 fails
            ("M2", 3): 0.6, ("WR2S", 3): 0.0, ("WR2L", 3): 0.0,
            # Scenario 4: general reduction
            ("S1", 4): 0.8, ("S3", 4): 0.7, ("WC1S", 4): 0.9, ("WC1L", 4): 0.9,
            ("WR2S", 4): 0.8, ("WR2L", 4): 0.8,
        },
        "demand_factor": {
            ("C1", 2): 1.2, ("C2", 2): 1.1, ("C3", 2): 1.0, ("C4", 2): 1.3,
            ("C1", 3): 0.9, ("C2", 3): 0.8, ("C3", 3): 1.1, ("C4", 3): 0.9,
            ("C1", 4): 1.1, ("C2", 4): 1.0, ("C3", 4): 1.2, ("C4", 4): 0.8,
        },
    }

    network = SupplyChainNetwork.from_definitions(
        nodes, _arcs(pairs), node_data, suppliers + central + regional
    )
    scenarios = ScenarioSet.from_definitions(
        scenario_data, {1: 0.4, 2: 0.25, 3: 0.20, 4: 0.15}
    )
    exclusive_groups = {
        f"dc_size_select_{location.lower()}": [location + "S", location + "L"]
        for location in ("WC1", "WC2", "WR1", "WR2", "WR3")
    }

    return NetworkDesignInstance(
        name="extended",
        network=network,
        scenarios=scenarios,
        revenue_per_unit=60.0,
        exclusive_groups=exclusive_groups
    )


INSTANCE_BUILDERS: Dict[str, Callable[[], NetworkDesignInstance]] = {
    "simple": create_simple_instance,
    "complex": create_complex_instance,
    "extended": create_extended_instance,
}


def get_instance(name: str) -> NetworkDesignInstance:
    """Look up a reference instance by name."""
    try:
        builder = INSTANCE_BUILDERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown instance {name!r}; choose from {sorted(INSTANCE_BUILDERS)}"
        ) from None
    return builder()
