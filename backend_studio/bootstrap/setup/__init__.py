"""Stage-2 launchers copied into generated projects' ``.scripts/`` folder."""
