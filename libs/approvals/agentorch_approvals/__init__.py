"""Human-in-the-loop approval requests routed through the inbox."""
