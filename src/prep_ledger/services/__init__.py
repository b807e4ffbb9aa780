"""
Service layer for Prep Ledger.

Services are plain modules of functions. Each function accepts an optional
``session`` and otherwise runs in its own ``session_scope()``:

- unit_converter: recorded quantity -> purchase units
- cost_allocator: batch cost and cost per unit arithmetic
- ledger_service: append-only inventory ledger and stock updates
- catalog_service: products and prep recipes
- production_run_service: run lifecycle and completion
- access: restaurant access checks
"""
