"""
Stateless read-path computations over stored observations.

Modules:
    ranking: Rank with gaps, percentile and peer gaps for comparable values
    aggregation: Demand-weighted wholesale price and bill summaries
"""
