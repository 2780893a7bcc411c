"""Gas equations of state used by the coupling solver."""
