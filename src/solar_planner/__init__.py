"""Solar car race itinerary planner."""
