"""Wedding seating optimizer package."""
from .models import (
    Guest,
    Table,
    Relationship,
    SeatingPreference,
    OptimizationCriteria,
    OptimizerSettings,
    OptimizationProgress,
    SeatingPlan,
    ConstraintViolation,
)
from .errors import InfeasibleSeatingError, SeatingInputError
from .csv_loader import (
    load_guests,
    load_tables,
    load_preferences,
    load_relationships,
    load_all,
)
from .constraints import ConstraintIndex, validate_seating, can_assign_guest
from .optimizer import GeneticSeatingOptimizer, optimize_seating

__all__ = [
    "Guest",
    "Table",
    "Relationship",
    "SeatingPreference",
    "OptimizationCriteria",
    "OptimizerSettings",
    "OptimizationProgress",
    "SeatingPlan",
    "ConstraintViolation",
    "InfeasibleSeatingError",
    "SeatingInputError",
    "load_guests",
    "load_tables",
    "load_preferences",
    "load_relationships",
    "load_all",
    "ConstraintIndex",
    "validate_seating",
    "can_assign_guest",
    "GeneticSeatingOptimizer",
    "optimize_seating",
]
