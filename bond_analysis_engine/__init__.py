"""
Bond Analysis Engine

Production-style modules:
- bonds: bond terms, rate/grace/amortization variants, storage-record transform
- rates: annual nominal/effective rate -> per-period rate
- cashflows: periodic amortization schedule (bullet, partial/total grace)
- solver: Newton-Raphson (and bracketed) internal rate of return
- valuation: present value, Macaulay/modified duration, convexity
- analysis: per-bond report (market price, durations, convexity, TCEA, TREA)
- portfolio: batch analysis + stacked cashflow tables
- risk: market-rate DV01, effective convexity, duration/convexity price estimate
- scenarios: market-rate shift runners
- utils: payment calendar + display helpers

Callers import from the modules directly.
"""
