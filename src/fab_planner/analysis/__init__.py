"""Workload sources and the delivery feasibility estimator."""

__all__: list[str] = []
