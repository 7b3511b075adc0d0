"""Core (UI-agnostic) catalog dashboard logic.

This package contains:
- catalog loading (published sheet CSV -> records)
- the session's collection store and command reconciler
- paging and KPI aggregation (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
