from . import calculators, simulation

__all__ = [
    "calculators",
    "simulation",
]
