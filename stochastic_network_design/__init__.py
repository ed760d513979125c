# Stochastic Network Design Package
"""
Two-stage stochastic network design for multi-echelon supply chains:
- Model builder: expected-profit MILP over a declarative node/arc graph
- Result extraction: opened facilities, flows and lost demand per scenario
- Echelon layout: layered drawing order inferred from node naming
"""

__version__ = "0.1.0"
