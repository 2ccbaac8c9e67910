"""Sales pipeline -- stage taxonomy, deal grouping, drag transitions and the board.

Provides the fixed stage taxonomy (stages), the per-stage grouping engine
(grouping), the drag-and-drop transition state machine with per-deal
serialisation (transitions), the board view model (board), plus the deal
search filter (search) and dashboard metrics (dashboard).

Import from the submodules directly; this package does not re-export them
because the record schemas depend on pipeline.stages.
"""
