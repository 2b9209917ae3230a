"""Calendar, business-day arithmetic, lead time and dependency propagation.

Import the submodules directly, e.g.:

    from fab_planner.scheduling.business_days import add_business_days
"""

__all__: list[str] = []
