"""Pipeline stages and the orchestrator that chains them."""
