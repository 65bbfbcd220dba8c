"""
Meal plan guard.

Turns a loosely structured, machine-generated meal-plan proposal into a
dimensionally consistent, calorie/macro-accurate day plan.

Structure:
- domain/: State resolution, unit/yield transforms, macros, reconciliation, validation
- application/: Pipeline orchestration and concurrent nutrition lookups
- infrastructure/: Alert sinks, nutrition fact cache, logging setup
- tests/: Test suite (unit, integration)
"""

__version__ = "1.0.0"
