"""Core data structures: state layout, problem policy, boundary conditions."""
