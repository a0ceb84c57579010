"""Web API over the planner and live ride session."""
