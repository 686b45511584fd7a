"""Option contracts, payoffs, closed forms and the Monte Carlo engine."""
