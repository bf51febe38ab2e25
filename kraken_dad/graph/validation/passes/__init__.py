from kraken_dad.graph.validation.passes.cfg_pass import CFGAnalysis, run_cfg_pass
from kraken_dad.graph.validation.passes.edge_pass import run_edge_pass
from kraken_dad.graph.validation.passes.input_pass import run_input_pass
from kraken_dad.graph.validation.passes.structure_pass import run_structure_pass

__all__ = [
    "CFGAnalysis",
    "run_cfg_pass",
    "run_edge_pass",
    "run_input_pass",
    "run_structure_pass",
]
