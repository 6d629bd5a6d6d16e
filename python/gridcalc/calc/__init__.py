"""gridcalc.calc - Formula resolution and recalculation engine for gridcalc grids."""

from gridcalc.calc._arith import ArithmeticEvaluator, EvaluationError, FormulasEvaluator
from gridcalc.calc._engine import FORMULA_PREFIX, RecalcEngine
from gridcalc.calc._functions import RANGE_FUNCTIONS, CellError, FunctionRegistry, RangeValues, is_error
from gridcalc.calc._graph import CircularReferenceError, DependencyGraph
from gridcalc.calc._parser import expand_range, parse_range, scan_addresses, scan_range_calls
from gridcalc.calc._protocol import CellDelta, ExpressionEvaluator, RecalcPlan, RecalcResult
from gridcalc.calc._resolver import ReferenceResolver, Resolution

__all__ = [
    "ArithmeticEvaluator",
    "CellDelta",
    "CellError",
    "CircularReferenceError",
    "DependencyGraph",
    "EvaluationError",
    "ExpressionEvaluator",
    "FORMULA_PREFIX",
    "FormulasEvaluator",
    "FunctionRegistry",
    "RANGE_FUNCTIONS",
    "RangeValues",
    "RecalcEngine",
    "RecalcPlan",
    "RecalcResult",
    "ReferenceResolver",
    "Resolution",
    "expand_range",
    "is_error",
    "parse_range",
    "scan_addresses",
    "scan_range_calls",
]
