"""
Order analytics.

- ``aggregator``: pandas groupby reports over the order store (sales,
  popular items, customers, operations, dashboard).
- ``cache``: injectable time-bounded cache for the expensive reports.
"""
